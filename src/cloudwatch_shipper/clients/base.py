"""
Log stream backend protocol and shared types.

A backend is an append-only log stream addressed by a log group and a log
stream name. Appends are chained by an opaque sequence token: every successful
append returns the token the next append must carry.

Invariants:
    - The first append to a new stream carries no token
    - A backend raises InvalidSequenceToken carrying the token it expects
      when the caller's token is stale
    - Events within one append are stored in the order given
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class Destination:
    """Identifies the append-only target."""
    log_group_name: str
    log_stream_name: str

    def __str__(self) -> str:
        return f"{self.log_group_name}/{self.log_stream_name}"


@dataclass(frozen=True)
class LogEvent:
    """A message stamped with its send time in epoch milliseconds."""
    timestamp: int
    message: str

    @classmethod
    def now(cls, message: str) -> "LogEvent":
        return cls(timestamp=int(round(time.time() * 1000)), message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "message": self.message}


@dataclass(frozen=True)
class AppendResult:
    """Outcome of a successful append."""
    next_sequence_token: Optional[str]
    rejected_info: Optional[Dict[str, Any]] = None


@runtime_checkable
class LogStreamBackend(Protocol):
    """Operations the delivery worker needs from the remote log stream."""

    def create_log_group(self, log_group_name: str) -> None:
        """Create a log group.

        Raises:
            GroupAlreadyExists: If the group is already there
        """
        ...

    def create_log_stream(self, log_group_name: str, log_stream_name: str) -> None:
        """Create a log stream inside an existing group.

        Raises:
            GroupNotFound: If the group does not exist
            StreamAlreadyExists: If the stream is already there
        """
        ...

    def append_events(
        self,
        log_group_name: str,
        log_stream_name: str,
        events: List[LogEvent],
        sequence_token: Optional[str] = None,
    ) -> AppendResult:
        """Append events to a stream.

        Raises:
            InvalidSequenceToken: If sequence_token is not the expected one
            DataAlreadyAccepted: If this batch was already stored
        """
        ...
