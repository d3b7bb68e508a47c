"""
Fixed-window request counter keyed by client address.

Applied in front of the auth endpoints only. It is pure volume accounting:
it never looks at who the caller claims to be or whether earlier attempts
succeeded.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from app.core.errors import TooManyRequestsError

# Forget idle keys every N hits so the table cannot grow without bound
_SWEEP_EVERY = 1000


@dataclass
class _Window:
    started_at: float
    count: int = 0


@dataclass(frozen=True)
class RateLimitStatus:
    limit: int
    remaining: int
    reset_after: int  # seconds until the current window closes


class RateLimiter:
    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._hits = 0

    def hit(self, key: str) -> RateLimitStatus:
        """
        Count one request for ``key``.

        Increment and compare happen under one lock, so concurrent requests
        never lose a count. Raises TooManyRequestsError once the count for
        the current window goes past max_requests.
        """
        with self._lock:
            now = self._clock()
            self._hits += 1
            if self._hits % _SWEEP_EVERY == 0:
                self._sweep(now)

            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = _Window(started_at=now)
                self._windows[key] = window

            window.count += 1
            reset_after = max(0, math.ceil(window.started_at + self.window_seconds - now))

            if window.count > self.max_requests:
                raise TooManyRequestsError(retry_after=reset_after, limit=self.max_requests)

            return RateLimitStatus(
                limit=self.max_requests,
                remaining=self.max_requests - window.count,
                reset_after=reset_after,
            )

    def _sweep(self, now: float) -> None:
        expired = [
            k for k, w in self._windows.items()
            if now - w.started_at >= self.window_seconds
        ]
        for k in expired:
            del self._windows[k]
