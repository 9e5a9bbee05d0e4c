"""
Log stream backends.

- CloudWatch Logs (production)
- In-memory (tests and local development)
"""

from typing import Optional

from ..config.aws_config import AWSClientManager
from ..config.settings import AWSCredentials, DeliveryOptions
from .base import AppendResult, Destination, LogEvent, LogStreamBackend
from .cloudwatch_logs import CloudWatchLogsClient
from .memory import InMemoryLogStream


def create_log_stream_backend(
    credentials: Optional[AWSCredentials],
    options: DeliveryOptions,
) -> LogStreamBackend:
    """Build the backend named by ``options.backend``.

    Each call returns a fresh connection; the in-memory backend therefore
    starts empty.
    """
    if options.backend == "memory":
        return InMemoryLogStream()
    return CloudWatchLogsClient(AWSClientManager(credentials, options))


__all__ = [
    "AppendResult",
    "Destination",
    "LogEvent",
    "LogStreamBackend",
    "CloudWatchLogsClient",
    "InMemoryLogStream",
    "create_log_stream_backend",
]
