"""
CloudWatch Shipper - background log delivery to AWS CloudWatch Logs.

Application code hands text messages to a DeliverySupervisor; a supervised
background thread batches them and appends them, in order, to one CloudWatch
log stream, handling sequence token conflicts, missing log groups and
process forks.
"""

from .clients.base import Destination, LogEvent
from .config.settings import AWSCredentials, DeliveryOptions, ShipperSettings, load_settings
from .delivery import DeliverySupervisor, DeliveryWorker, MessageBatcher
from .handler import CloudWatchLogHandler

__version__ = "1.0.0"

__all__ = [
    "AWSCredentials",
    "CloudWatchLogHandler",
    "DeliveryOptions",
    "DeliverySupervisor",
    "DeliveryWorker",
    "Destination",
    "LogEvent",
    "MessageBatcher",
    "ShipperSettings",
    "load_settings",
]
