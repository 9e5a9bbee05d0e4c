"""Exception hierarchy for the log shipper."""

from typing import Any, Optional


class ShipperError(Exception):
    """Base exception for the log shipper."""
    pass


class RemoteLogStreamError(ShipperError):
    """The remote log stream rejected or failed a request."""
    pass


class GroupAlreadyExists(RemoteLogStreamError):
    """The log group already exists."""
    pass


class GroupNotFound(RemoteLogStreamError):
    """The log group does not exist."""
    pass


class StreamAlreadyExists(RemoteLogStreamError):
    """The log stream already exists."""
    pass


class _ExpectedTokenError(RemoteLogStreamError):

    def __init__(self, message: str, expected_token: Optional[str] = None):
        super().__init__(message)
        self.expected_token = expected_token


class InvalidSequenceToken(_ExpectedTokenError):
    """The sequence token sent with an append was not the one the stream expects.

    Attributes:
        expected_token: Token the stream will accept next (None if the stream
            expects no token)
    """
    pass


class DataAlreadyAccepted(_ExpectedTokenError):
    """The batch was already stored by an earlier append."""
    pass


class DeliveryError(ShipperError):
    """A message or batch could not be delivered."""
    pass


class LogEventRejected(DeliveryError):
    """The stream accepted the call but rejected some of the events."""

    def __init__(self, rejected_info: Any):
        super().__init__(f"Log events rejected: {rejected_info}")
        self.rejected_info = rejected_info


class SequenceTokenRetriesExceeded(DeliveryError):
    """The stream kept disagreeing about the sequence token."""
    pass


class WorkerDeadError(DeliveryError):
    """The delivery worker's thread is no longer running in this process."""
    pass


class SupervisorClosedError(DeliveryError):
    """Delivery was attempted after the supervisor was shut down."""
    pass
