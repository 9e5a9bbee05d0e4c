"""Thread-safe FIFO of messages waiting for delivery."""

import threading
from collections import deque
from typing import Callable, List, Optional

DROP_OLDEST = "drop_oldest"
DROP_NEWEST = "drop_newest"


class MessageBatcher:
    """
    Pending message queue shared by callers and the delivery worker.

    Callers push from any thread; only the worker drains. ``push`` never
    blocks and never raises. Without ``max_size`` the queue is unbounded;
    with it, ``overflow_policy`` decides which message is discarded.
    """

    def __init__(self, max_size: Optional[int] = None, overflow_policy: str = DROP_OLDEST):
        if overflow_policy not in (DROP_OLDEST, DROP_NEWEST):
            raise ValueError(f"Unknown overflow policy '{overflow_policy}'")

        self.max_size = max_size
        self.overflow_policy = overflow_policy
        self.dropped = 0
        self._queue = deque()
        self._lock = threading.Lock()

    def push(self, message: str) -> bool:
        """
        Append a message to the tail.

        Returns:
            False if the overflow policy discarded a message, True otherwise
        """
        with self._lock:
            if self.max_size is not None and len(self._queue) >= self.max_size:
                self.dropped += 1
                if self.overflow_policy == DROP_NEWEST:
                    return False
                self._queue.popleft()
                self._queue.append(message)
                return False

            self._queue.append(message)
            return True

    def drain_batch(self, max_size: int, stop: Optional[Callable[[], bool]] = None) -> List[str]:
        """
        Remove up to ``max_size`` messages from the head.

        Stops early once ``stop()`` returns True. Returns an empty list
        immediately when nothing is queued.
        """
        batch = []
        while len(batch) < max_size:
            if stop is not None and stop():
                break
            with self._lock:
                if not self._queue:
                    break
                batch.append(self._queue.popleft())
        return batch

    def drain_all(self) -> List[str]:
        """Remove and return every pending message."""
        with self._lock:
            messages = list(self._queue)
            self._queue.clear()
        return messages

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def __bool__(self) -> bool:
        return len(self) > 0
