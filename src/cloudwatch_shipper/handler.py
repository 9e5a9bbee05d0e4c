"""logging.Handler that ships records to CloudWatch Logs."""

import logging
from typing import Optional

from .config.settings import ShipperSettings
from .delivery.supervisor import DeliverySupervisor

# Records from these loggers would feed back into the queue they describe.
_INTERNAL_LOGGERS = ('cloudwatch_shipper', 'botocore', 'boto3', 'urllib3')


def _is_internal(name: str) -> bool:
    return any(name == prefix or name.startswith(prefix + ".") for prefix in _INTERNAL_LOGGERS)


class CloudWatchLogHandler(logging.Handler):
    """
    Forwards formatted log records to a DeliverySupervisor.

    ``emit`` only queues the message, so logging calls never wait on the
    network. Closing the handler flushes and stops the supervisor.
    """

    def __init__(self, supervisor: DeliverySupervisor, level: int = logging.NOTSET):
        super().__init__(level)
        self.supervisor = supervisor

    @classmethod
    def from_settings(cls, settings: ShipperSettings, level: int = logging.NOTSET) -> "CloudWatchLogHandler":
        supervisor = DeliverySupervisor(
            settings.credentials,
            settings.log_group_name,
            settings.log_stream_name,
            settings.options
        )
        return cls(supervisor, level)

    def emit(self, record: logging.LogRecord) -> None:
        if _is_internal(record.name):
            return
        try:
            self.supervisor.deliver(self.format(record))
        except Exception:
            self.handleError(record)

    def flush(self, timeout: Optional[float] = None) -> None:
        self.supervisor.flush(timeout if timeout is not None else self.supervisor.options.shutdown_timeout_seconds)

    def close(self) -> None:
        try:
            self.supervisor.shutdown()
        finally:
            super().close()
