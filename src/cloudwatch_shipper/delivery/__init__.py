"""
Delivery subsystem.

DeliverySupervisor is the only object application code needs; it keeps one
DeliveryWorker alive per log stream. The worker drains a MessageBatcher in
batches and appends them to the stream, maintaining the sequence token.

Invariants:
    - At most one current worker per supervisor
    - Messages are appended in enqueue order within one worker's lifetime
    - deliver() never blocks on network I/O
"""

from .batcher import MessageBatcher
from .supervisor import DeliverySupervisor
from .worker import DeliveryStats, DeliveryWorker, WorkerState

__all__ = [
    "DeliveryStats",
    "DeliverySupervisor",
    "DeliveryWorker",
    "MessageBatcher",
    "WorkerState",
]
