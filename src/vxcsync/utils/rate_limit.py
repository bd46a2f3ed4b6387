"""Token-bucket admission limiter shared by concurrent remote tasks."""

from __future__ import annotations

import collections
import threading
import time
from typing import Callable


class TokenBucket:
    """Blocking token bucket with a fixed burst and per-token refill period.

    Each granted token is returned to the bucket *refill_period* seconds
    after it was spent, so no window of *refill_period* seconds ever holds
    more than *burst* grants.

    Args:
        burst: Bucket capacity (maximum grants per window).
        refill_period: Seconds before a spent token becomes available again.
        clock: Monotonic time source.
        sleep: Blocking sleep function.
    """

    def __init__(
        self,
        burst: int,
        refill_period: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")
        if refill_period <= 0:
            raise ValueError(f"refill_period must be > 0, got {refill_period}")
        self.burst = burst
        self.refill_period = refill_period
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._spent: collections.deque[float] = collections.deque()

    def acquire(self) -> float:
        """Block until a token is available, spend it and return the grant time."""
        while True:
            with self._lock:
                now = self._clock()
                while self._spent and now - self._spent[0] >= self.refill_period:
                    self._spent.popleft()
                if len(self._spent) < self.burst:
                    self._spent.append(now)
                    return now
                wait = self.refill_period - (now - self._spent[0])
            self._sleep(wait)

    def available(self) -> int:
        """Return the number of tokens that could be granted right now."""
        with self._lock:
            now = self._clock()
            live = sum(1 for t in self._spent if now - t < self.refill_period)
            return self.burst - live
