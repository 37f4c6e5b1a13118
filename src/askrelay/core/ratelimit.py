"""Simple in-memory rate limiter."""
import threading
import time
from typing import NamedTuple, Optional


class RateDecision(NamedTuple):
    allowed: bool
    remaining: Optional[int]
    reset_seconds: Optional[int]


class RateLimiter:
    """Fixed-window limiter keyed by client; one window per key."""

    def __init__(self, limit: int, window_seconds: int, clock=time.time):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets = {}

    @property
    def enabled(self) -> bool:
        return bool(self.limit and self.window_seconds)

    def hit(self, key: str) -> RateDecision:
        """Count one request for `key` and report whether it is allowed."""
        if not key or not self.enabled:
            return RateDecision(True, None, None)

        now = self._clock()
        window = int(now // self.window_seconds)
        reset_at = (window + 1) * self.window_seconds

        with self._lock:
            current_window, count = self._buckets.get(key, (window, 0))
            if current_window != window:
                count = 0
            count += 1
            self._buckets[key] = (window, count)
            # Drop keys from past windows so idle clients do not accumulate.
            if len(self._buckets) > 10000:
                self._buckets = {k: v for k, v in self._buckets.items() if v[0] == window}

        return RateDecision(
            allowed=count <= self.limit,
            remaining=max(0, self.limit - count),
            reset_seconds=max(0, int(reset_at - now)),
        )
