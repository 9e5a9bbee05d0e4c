"""Tests for the pending message queue."""

import threading

import pytest

from cloudwatch_shipper.delivery.batcher import DROP_NEWEST, DROP_OLDEST, MessageBatcher


class TestMessageBatcher:
    """Test MessageBatcher queueing and draining."""

    def test_drain_preserves_fifo_order(self):
        batcher = MessageBatcher()
        for message in ["a", "b", "c"]:
            assert batcher.push(message) is True

        assert batcher.drain_batch(10) == ["a", "b", "c"]
        assert len(batcher) == 0

    def test_drain_respects_max_size(self):
        batcher = MessageBatcher()
        for i in range(250):
            batcher.push(str(i))

        first = batcher.drain_batch(100)
        second = batcher.drain_batch(100)
        third = batcher.drain_batch(100)

        assert len(first) == 100
        assert len(second) == 100
        assert len(third) == 50
        assert first + second + third == [str(i) for i in range(250)]

    def test_drain_empty_queue_returns_immediately(self):
        batcher = MessageBatcher()

        assert batcher.drain_batch(100) == []
        assert not batcher

    def test_drain_stops_when_predicate_is_set(self):
        batcher = MessageBatcher()
        for i in range(10):
            batcher.push(str(i))

        calls = []

        def stop():
            calls.append(None)
            return len(calls) > 3

        batch = batcher.drain_batch(100, stop)

        assert batch == ["0", "1", "2"]
        assert len(batcher) == 7

    def test_drain_with_stop_already_set_takes_nothing(self):
        batcher = MessageBatcher()
        batcher.push("a")

        assert batcher.drain_batch(100, lambda: True) == []
        assert len(batcher) == 1

    def test_drain_all(self):
        batcher = MessageBatcher()
        batcher.push("a")
        batcher.push("b")

        assert batcher.drain_all() == ["a", "b"]
        assert batcher.drain_all() == []

    def test_duplicates_are_kept(self):
        batcher = MessageBatcher()
        batcher.push("same")
        batcher.push("same")

        assert batcher.drain_batch(10) == ["same", "same"]


class TestOverflowPolicy:
    """Test bounded queue behaviour."""

    def test_drop_oldest(self):
        batcher = MessageBatcher(max_size=2, overflow_policy=DROP_OLDEST)
        batcher.push("a")
        batcher.push("b")

        assert batcher.push("c") is False
        assert batcher.dropped == 1
        assert batcher.drain_all() == ["b", "c"]

    def test_drop_newest(self):
        batcher = MessageBatcher(max_size=2, overflow_policy=DROP_NEWEST)
        batcher.push("a")
        batcher.push("b")

        assert batcher.push("c") is False
        assert batcher.dropped == 1
        assert batcher.drain_all() == ["a", "b"]

    def test_unbounded_by_default(self):
        batcher = MessageBatcher()
        for i in range(5000):
            assert batcher.push(str(i)) is True

        assert len(batcher) == 5000
        assert batcher.dropped == 0

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError, match="Unknown overflow policy"):
            MessageBatcher(max_size=1, overflow_policy="block")


class TestConcurrentAccess:
    """Test pushes from several threads while draining."""

    def test_concurrent_push_and_drain(self):
        batcher = MessageBatcher()
        producers = 4
        per_producer = 500
        drained = []
        done = threading.Event()

        def produce(n):
            for i in range(per_producer):
                batcher.push(f"{n}-{i}")

        def consume():
            while not done.is_set() or batcher:
                drained.extend(batcher.drain_batch(100))

        consumer = threading.Thread(target=consume)
        consumer.start()
        threads = [threading.Thread(target=produce, args=(n,)) for n in range(producers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        done.set()
        consumer.join(5)

        assert len(drained) == producers * per_producer
        # Each producer's messages stay in the order it pushed them
        for n in range(producers):
            mine = [m for m in drained if m.startswith(f"{n}-")]
            assert mine == [f"{n}-{i}" for i in range(per_producer)]
