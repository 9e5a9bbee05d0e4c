"""Background thread that batches queued messages into a single log stream."""

import logging
import os
import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..clients import create_log_stream_backend
from ..clients.base import AppendResult, Destination, LogEvent, LogStreamBackend
from ..config.settings import AWSCredentials, DeliveryOptions
from ..exceptions import (
    DataAlreadyAccepted,
    GroupAlreadyExists,
    GroupNotFound,
    InvalidSequenceToken,
    LogEventRejected,
    SequenceTokenRetriesExceeded,
    StreamAlreadyExists,
    WorkerDeadError,
)
from ..metrics import (
    APPEND_DURATION,
    BATCHES_SENT,
    EVENTS_SENT,
    MESSAGES_DROPPED,
    SEQUENCE_TOKEN_CONFLICTS,
)
from ..utils.logging import log_error_with_context
from .batcher import MessageBatcher

logger = logging.getLogger(__name__)

StreamFactory = Callable[[Optional[AWSCredentials], DeliveryOptions], LogStreamBackend]


class WorkerState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    EXITING = "exiting"


@dataclass
class DeliveryStats:
    """Statistics for one worker's lifetime."""
    messages_sent: int = 0
    batches_sent: int = 0
    sequence_token_conflicts: int = 0
    messages_dropped: int = 0
    latency_ms: float = 0.0
    last_batch_time: Optional[float] = None


class DeliveryWorker:
    """
    Owns a message queue, a log stream connection and the stream's sequence token.

    The worker starts its thread on construction and loops:

    1. connect (create the stream, and its group if missing) when disconnected
    2. drain up to ``batch_size`` messages and append them, adopting the
       token the stream reports on a sequence token conflict
    3. wait ``idle_wait_seconds`` when nothing is queued
    4. stop once ``request_exit`` has been called

    Any other error ends the thread; ``error`` keeps the exception. The
    connection and sequence token are touched only by the worker's own
    thread; callers interact through ``deliver`` and the exit flag.
    """

    def __init__(
        self,
        credentials: Optional[AWSCredentials],
        destination: Destination,
        options: Optional[DeliveryOptions] = None,
        stream_factory: Optional[StreamFactory] = None,
        pending: Optional[Iterable[str]] = None,
    ):
        self.credentials = credentials
        self.destination = destination
        self.options = options or DeliveryOptions()
        self._stream_factory = stream_factory or create_log_stream_backend

        self._batcher = MessageBatcher(
            max_size=self.options.max_queue_size,
            overflow_policy=self.options.overflow_policy
        )
        self._exiting = threading.Event()
        self._in_flight = False
        self._stream: Optional[LogStreamBackend] = None
        self._sequence_token: Optional[str] = None
        self._labels = {'log_group': destination.log_group_name}

        self.state = WorkerState.DISCONNECTED
        self.error: Optional[BaseException] = None
        self.stats = DeliveryStats()
        self.pid = os.getpid()

        # Salvaged messages go in before the thread starts so they stay ahead
        # of anything delivered later.
        for message in pending or ():
            self._push(message)

        self._thread = threading.Thread(
            target=self._run,
            name=f"cloudwatch-delivery[{destination}]",
            daemon=True
        )
        self._thread.start()

    @property
    def sequence_token(self) -> Optional[str]:
        return self._sequence_token

    @property
    def pending(self) -> int:
        return len(self._batcher)

    def is_alive(self) -> bool:
        """Whether the worker thread is running and belongs to this process."""
        return self.pid == os.getpid() and self._thread.is_alive()

    def deliver(self, message: str) -> None:
        """
        Queue a message for delivery.

        Raises:
            WorkerDeadError: If the worker thread has terminated or was
                inherited through a fork
        """
        if not self.is_alive():
            raise WorkerDeadError(f"Delivery worker for {self.destination} is not running")
        self._push(message)

    def _push(self, message: str) -> None:
        if not self._batcher.push(message):
            self.stats.messages_dropped += 1
            MESSAGES_DROPPED.labels(**self._labels).inc()
            logger.debug(f"Queue for {self.destination} full, dropped a message ({self.options.overflow_policy})")

    def request_exit(self) -> None:
        """Ask the cycle to stop; queued messages may be left unsent."""
        self._exiting.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the thread to finish. Returns True once it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every queued message has been handed to the log stream.

        Returns:
            True if the queue drained, False on timeout or if the worker died
            with messages still queued
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        poll_interval = min(self.options.idle_wait_seconds, 0.05)

        while self.is_alive():
            # Queue before in-flight: the cycle raises the in-flight flag
            # before it drains.
            if not self._batcher and not self._in_flight:
                return True
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval)

        return not self._batcher

    def take_pending(self) -> List[str]:
        """Remove and return every message still queued."""
        return self._batcher.drain_all()

    def _run(self) -> None:
        logger.info(f"Delivery worker started for {self.destination}")
        try:
            while True:
                if self._stream is None:
                    self._connect()

                if self._batcher:
                    self._deliver_batch()
                else:
                    self._exiting.wait(self.options.idle_wait_seconds)

                if self._exiting.is_set():
                    break
        except Exception as e:
            self.error = e
            log_error_with_context(
                logger, e, "delivery cycle",
                destination=str(self.destination),
                pending=len(self._batcher)
            )
        finally:
            self._in_flight = False
            self.state = WorkerState.EXITING
            logger.info(f"Delivery worker for {self.destination} exiting with {len(self._batcher)} messages queued")

    def _connect(self) -> None:
        """Open the log stream, creating the stream and its group as needed."""
        group = self.destination.log_group_name
        stream_name = self.destination.log_stream_name
        stream = self._stream_factory(self.credentials, self.options)

        try:
            stream.create_log_stream(group, stream_name)
        except StreamAlreadyExists:
            pass
        except GroupNotFound:
            logger.info(f"Log group {group} not found, creating it")
            try:
                stream.create_log_group(group)
            except GroupAlreadyExists:
                pass
            # Retried once; a second GroupNotFound propagates.
            try:
                stream.create_log_stream(group, stream_name)
            except StreamAlreadyExists:
                pass

        self._stream = stream
        self.state = WorkerState.CONNECTED
        logger.info(f"Connected to log stream {self.destination}")

    def _deliver_batch(self) -> None:
        self._in_flight = True
        try:
            messages = self._batcher.drain_batch(self.options.batch_size, self._exiting.is_set)
            if not messages:
                return

            events = [LogEvent.now(message) for message in messages]

            start_time = time.time()
            with APPEND_DURATION.labels(**self._labels).time():
                result = self._append(events)

            if result is None:
                return

            self._sequence_token = result.next_sequence_token
            if result.rejected_info:
                raise LogEventRejected(result.rejected_info)

            self.stats.messages_sent += len(events)
            self.stats.batches_sent += 1
            self.stats.latency_ms = (time.time() - start_time) * 1000
            self.stats.last_batch_time = time.time()
            EVENTS_SENT.labels(**self._labels).inc(len(events))
            BATCHES_SENT.labels(**self._labels).inc()

            logger.debug(f"Sent {len(events)} events to {self.destination}")
        finally:
            self._in_flight = False

    def _append(self, events: List[LogEvent]) -> Optional[AppendResult]:
        """
        Append one batch, resubmitting the same events on sequence token conflicts.

        Returns:
            The append result, or None if the stream already held this batch
        """
        conflicts = 0
        max_retries = self.options.max_sequence_token_retries

        while True:
            try:
                return self._stream.append_events(
                    self.destination.log_group_name,
                    self.destination.log_stream_name,
                    events,
                    self._sequence_token
                )
            except InvalidSequenceToken as e:
                conflicts += 1
                self.stats.sequence_token_conflicts += 1
                SEQUENCE_TOKEN_CONFLICTS.labels(**self._labels).inc()

                if max_retries is not None and conflicts > max_retries:
                    raise SequenceTokenRetriesExceeded(
                        f"Sequence token for {self.destination} still rejected after {max_retries} retries"
                    ) from e

                logger.warning(f"Sequence token conflict on {self.destination}, retrying with expected token")
                self._sequence_token = e.expected_token
            except DataAlreadyAccepted as e:
                logger.warning(f"Batch of {len(events)} events already accepted by {self.destination}")
                self._sequence_token = e.expected_token
                return None

    def get_stats(self) -> Dict[str, Any]:
        """Get worker statistics."""
        return {
            'state': self.state.value,
            'alive': self.is_alive(),
            'pending': len(self._batcher),
            'has_sequence_token': self._sequence_token is not None,
            'stats': asdict(self.stats),
            'error': repr(self.error) if self.error else None
        }

    def health_check(self) -> Dict[str, Any]:
        """Perform health check on the worker."""
        stats = self.get_stats()
        issues = []

        if not stats['alive']:
            issues.append('Worker not running')
        if self.error is not None:
            issues.append(f'Worker failed: {stats["error"]}')
        if self.options.max_queue_size and stats['pending'] >= self.options.max_queue_size:
            issues.append(f'Queue full: {stats["pending"]}')

        return {
            'status': 'healthy' if not issues else 'unhealthy',
            'issues': issues,
            'stats': stats
        }
