"""Pytest configuration and shared fixtures."""

import time
from typing import Callable, List
from unittest.mock import Mock

import pytest

from cloudwatch_shipper.clients.base import Destination
from cloudwatch_shipper.clients.memory import InMemoryLogStream
from cloudwatch_shipper.config.settings import AWSCredentials, DeliveryOptions
from cloudwatch_shipper.delivery.supervisor import DeliverySupervisor
from cloudwatch_shipper.delivery.worker import DeliveryWorker

GROUP = "test-group"
STREAM = "test-stream"


def _wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_for():
    """Poll a predicate until it holds or the timeout expires."""
    return _wait_for


@pytest.fixture
def credentials() -> AWSCredentials:
    return AWSCredentials(access_key_id="test", secret_access_key="test")


@pytest.fixture
def destination() -> Destination:
    return Destination(GROUP, STREAM)


@pytest.fixture
def fast_options() -> DeliveryOptions:
    """Options with a short idle wait so tests don't sit around."""
    return DeliveryOptions(
        backend="memory",
        idle_wait_seconds=0.01,
        shutdown_timeout_seconds=5.0
    )


@pytest.fixture
def memory_backend() -> InMemoryLogStream:
    return InMemoryLogStream()


@pytest.fixture
def stream_factory(memory_backend):
    """Stream factory handing every worker the same in-memory backend."""
    return Mock(return_value=memory_backend)


@pytest.fixture
def make_worker(credentials, destination, fast_options, stream_factory):
    """Build delivery workers that are stopped when the test ends."""
    workers: List[DeliveryWorker] = []

    def _make(pending=None, options=None, factory=None) -> DeliveryWorker:
        worker = DeliveryWorker(
            credentials,
            destination,
            options or fast_options,
            stream_factory=factory or stream_factory,
            pending=pending
        )
        workers.append(worker)
        return worker

    yield _make

    for worker in workers:
        worker.request_exit()
        worker.join(5)


@pytest.fixture
def supervisor(credentials, fast_options, stream_factory):
    """Supervisor shipping to the shared in-memory backend."""
    supervisor = DeliverySupervisor(
        credentials,
        GROUP,
        STREAM,
        fast_options,
        stream_factory=stream_factory
    )
    yield supervisor
    supervisor.shutdown()
