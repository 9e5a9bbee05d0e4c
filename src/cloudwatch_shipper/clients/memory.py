"""
In-memory log stream backend.

Provides a log stream that lives in the current process for:
- Unit tests
- Local development without AWS credentials

Invariants:
    - All data is lost on process exit
    - Enforces the same group/stream/sequence token rules as CloudWatch
    - Thread-safe for concurrent access
"""

import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from ..exceptions import (
    GroupAlreadyExists,
    GroupNotFound,
    InvalidSequenceToken,
    RemoteLogStreamError,
    StreamAlreadyExists,
)
from .base import AppendResult, LogEvent

logger = logging.getLogger(__name__)


@dataclass
class InMemoryStream:
    """Events and the token the next append must carry."""
    events: List[LogEvent] = field(default_factory=list)
    batches: List[List[LogEvent]] = field(default_factory=list)
    expected_token: Optional[str] = None


@dataclass(frozen=True)
class AppendCall:
    """One append_events call as received, successful or not."""
    log_group_name: str
    log_stream_name: str
    events: Tuple[LogEvent, ...]
    sequence_token: Optional[str]


class InMemoryLogStream:
    """In-memory implementation of LogStreamBackend.

    Every call is recorded in ``calls`` (operation name, arguments) and every
    append attempt in ``append_calls``, so tests can assert on exactly what the
    worker sent. ``inject_failure`` queues an exception to raise on the next
    call of an operation.

    Example:
        >>> backend = InMemoryLogStream()
        >>> backend.create_log_group("app")
        >>> backend.create_log_stream("app", "web-1")
        >>> result = backend.append_events("app", "web-1", [LogEvent.now("hello")])
        >>> backend.messages("app", "web-1")
        ['hello']
    """

    def __init__(self) -> None:
        self._groups: Dict[str, Dict[str, InMemoryStream]] = {}
        self._lock = threading.Lock()
        self._token_counter = 0
        self._failures: Dict[str, Deque[Exception]] = defaultdict(deque)
        self.calls: List[Tuple[str, tuple]] = []
        self.append_calls: List[AppendCall] = []

    def inject_failure(self, operation: str, error: Exception) -> None:
        """Raise ``error`` on the next call to ``operation``."""
        with self._lock:
            self._failures[operation].append(error)

    def _maybe_fail(self, operation: str) -> None:
        if self._failures[operation]:
            raise self._failures[operation].popleft()

    def create_log_group(self, log_group_name: str) -> None:
        with self._lock:
            self.calls.append(("create_log_group", (log_group_name,)))
            self._maybe_fail("create_log_group")
            if log_group_name in self._groups:
                raise GroupAlreadyExists(log_group_name)
            self._groups[log_group_name] = {}
        logger.debug(f"Created in-memory log group {log_group_name}")

    def create_log_stream(self, log_group_name: str, log_stream_name: str) -> None:
        with self._lock:
            self.calls.append(("create_log_stream", (log_group_name, log_stream_name)))
            self._maybe_fail("create_log_stream")
            group = self._groups.get(log_group_name)
            if group is None:
                raise GroupNotFound(log_group_name)
            if log_stream_name in group:
                raise StreamAlreadyExists(f"{log_group_name}/{log_stream_name}")
            group[log_stream_name] = InMemoryStream()
        logger.debug(f"Created in-memory log stream {log_group_name}/{log_stream_name}")

    def append_events(
        self,
        log_group_name: str,
        log_stream_name: str,
        events: List[LogEvent],
        sequence_token: Optional[str] = None,
    ) -> AppendResult:
        with self._lock:
            self.calls.append(("append_events", (log_group_name, log_stream_name, sequence_token)))
            self.append_calls.append(
                AppendCall(log_group_name, log_stream_name, tuple(events), sequence_token)
            )
            self._maybe_fail("append_events")

            stream = self._groups.get(log_group_name, {}).get(log_stream_name)
            if stream is None:
                raise RemoteLogStreamError(
                    f"Log stream {log_group_name}/{log_stream_name} does not exist"
                )
            if not events:
                raise RemoteLogStreamError("At least one log event is required")

            if sequence_token != stream.expected_token:
                raise InvalidSequenceToken(
                    f"The given sequenceToken is invalid. The next expected "
                    f"sequenceToken is: {stream.expected_token or 'null'}",
                    stream.expected_token
                )

            stream.events.extend(events)
            stream.batches.append(list(events))
            self._token_counter += 1
            stream.expected_token = f"{self._token_counter:056d}"
            return AppendResult(next_sequence_token=stream.expected_token)

    def set_expected_token(self, log_group_name: str, log_stream_name: str, token: Optional[str]) -> None:
        """Force the token the stream expects, as if another writer had appended."""
        with self._lock:
            self._groups[log_group_name][log_stream_name].expected_token = token

    def expected_token(self, log_group_name: str, log_stream_name: str) -> Optional[str]:
        with self._lock:
            return self._groups[log_group_name][log_stream_name].expected_token

    def has_stream(self, log_group_name: str, log_stream_name: str) -> bool:
        with self._lock:
            return log_stream_name in self._groups.get(log_group_name, {})

    def messages(self, log_group_name: str, log_stream_name: str) -> List[str]:
        """Messages stored in a stream, in append order."""
        with self._lock:
            stream = self._groups.get(log_group_name, {}).get(log_stream_name)
            return [event.message for event in stream.events] if stream else []

    def batches(self, log_group_name: str, log_stream_name: str) -> List[List[LogEvent]]:
        with self._lock:
            stream = self._groups.get(log_group_name, {}).get(log_stream_name)
            return [list(batch) for batch in stream.batches] if stream else []

    def call_count(self, operation: str) -> int:
        with self._lock:
            return sum(1 for name, _ in self.calls if name == operation)
