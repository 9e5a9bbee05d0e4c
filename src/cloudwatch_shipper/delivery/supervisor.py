"""Keeps exactly one live delivery worker per log stream."""

import logging
import os
import threading
import time
import weakref
from typing import Any, Dict, Optional

from ..clients.base import Destination, LogStreamBackend
from ..clients.memory import InMemoryLogStream
from ..config.settings import AWSCredentials, DeliveryOptions
from ..exceptions import SupervisorClosedError, WorkerDeadError
from ..metrics import WORKER_RESTARTS
from .worker import DeliveryWorker, StreamFactory

logger = logging.getLogger(__name__)

_supervisors: "weakref.WeakSet[DeliverySupervisor]" = weakref.WeakSet()


def _reset_after_fork() -> None:
    for supervisor in list(_supervisors):
        supervisor._after_fork_in_child()


if hasattr(os, 'register_at_fork'):
    os.register_at_fork(after_in_child=_reset_after_fork)


def _shared_stream_factory(backend: LogStreamBackend) -> StreamFactory:
    def factory(credentials, options):
        return backend
    return factory


class DeliverySupervisor:
    """
    Entry point for application code.

    Holds the credentials, destination and options every worker is built
    from, creates a worker on first use and replaces it whenever it is found
    dead or inherited through a fork. Messages still queued on a worker that
    crashed in this process are carried over to its replacement; after a fork
    the inherited queue is left to the parent, which still owns it.

    Example:
        >>> with DeliverySupervisor(credentials, "app", "web-1") as shipper:
        ...     shipper.deliver("service started")
    """

    def __init__(
        self,
        credentials: Optional[AWSCredentials],
        log_group_name: str,
        log_stream_name: str,
        options: Optional[DeliveryOptions] = None,
        stream_factory: Optional[StreamFactory] = None,
    ):
        self.credentials = credentials
        self.destination = Destination(log_group_name, log_stream_name)
        self.options = options or DeliveryOptions()
        if stream_factory is None and self.options.backend == "memory":
            # Replacement workers must write to the store the first one used.
            stream_factory = _shared_stream_factory(InMemoryLogStream())
        self._stream_factory = stream_factory

        self._lock = threading.RLock()
        self._worker: Optional[DeliveryWorker] = None
        self._closed = False
        self.worker_restarts = 0

        _supervisors.add(self)

    @property
    def worker(self) -> Optional[DeliveryWorker]:
        return self._worker

    def deliver(self, message: str) -> None:
        """
        Queue a message on the current worker, replacing the worker if needed.

        A worker that dies between the liveness check and the hand-off is
        replaced and the message is offered once more.

        Raises:
            WorkerDeadError: If the replacement worker is also dead
            SupervisorClosedError: If shutdown() has been called
        """
        with self._lock:
            if self._closed:
                raise SupervisorClosedError(f"Supervisor for {self.destination} is shut down")

            worker = self._ensure_worker()
            try:
                worker.deliver(message)
            except WorkerDeadError:
                logger.warning(f"Delivery worker for {self.destination} died during hand-off, restarting")
                worker.request_exit()
                worker = self._start_worker(previous=worker)
                worker.deliver(message)

    def _ensure_worker(self) -> DeliveryWorker:
        worker = self._worker
        if worker is None:
            return self._start_worker()
        if not worker.is_alive():
            if worker.pid == os.getpid():
                logger.warning(f"Delivery worker for {self.destination} is dead, restarting")
            else:
                logger.info(f"Delivery worker for {self.destination} belongs to process {worker.pid}, restarting")
            return self._start_worker(previous=worker)
        return worker

    def _start_worker(self, previous: Optional[DeliveryWorker] = None) -> DeliveryWorker:
        pending = []
        if previous is not None:
            self.worker_restarts += 1
            WORKER_RESTARTS.labels(log_group=self.destination.log_group_name).inc()
            if previous.pid == os.getpid():
                pending = previous.take_pending()
                if pending:
                    logger.info(f"Carrying {len(pending)} queued messages over to the new worker")

        self._worker = DeliveryWorker(
            self.credentials,
            self.destination,
            self.options,
            stream_factory=self._stream_factory,
            pending=pending
        )
        return self._worker

    def _after_fork_in_child(self) -> None:
        # The lock may have been held by a parent thread at fork time.
        self._lock = threading.RLock()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for the current worker to send everything queued so far."""
        worker = self._worker
        if worker is None:
            return True
        return worker.flush(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Best-effort flush, then stop the worker.

        Waits at most ``timeout`` seconds in total (default
        ``options.shutdown_timeout_seconds``). Safe to call more than once.

        Returns:
            True if the worker drained its queue and stopped in time
        """
        if timeout is None:
            timeout = self.options.shutdown_timeout_seconds

        with self._lock:
            if self._closed:
                return True
            self._closed = True
            worker = self._worker

        if worker is None or not worker.is_alive():
            return worker is None or worker.pending == 0

        deadline = time.monotonic() + timeout
        flushed = worker.flush(timeout)
        worker.request_exit()
        stopped = worker.join(max(0.0, deadline - time.monotonic()))

        if not (flushed and stopped):
            logger.warning(
                f"Shutdown of {self.destination} timed out with {worker.pending} messages queued"
            )
        else:
            logger.info(f"Delivery to {self.destination} shut down")
        return flushed and stopped

    def __enter__(self) -> "DeliverySupervisor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def get_stats(self) -> Dict[str, Any]:
        """Get supervisor statistics."""
        worker = self._worker
        return {
            'destination': str(self.destination),
            'closed': self._closed,
            'worker_restarts': self.worker_restarts,
            'worker': worker.get_stats() if worker else None
        }

    def health_check(self) -> Dict[str, Any]:
        """Perform health check on the delivery subsystem."""
        worker = self._worker
        if worker is None:
            return {
                'status': 'healthy',
                'issues': [],
                'stats': self.get_stats()
            }

        health = worker.health_check()
        if self._closed:
            health['status'] = 'stopped'
        elif not worker.is_alive():
            # Replaced on the next deliver()
            health['status'] = 'degraded'
        health['stats'] = self.get_stats()
        return health
