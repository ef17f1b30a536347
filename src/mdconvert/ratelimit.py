"""Sliding-window request limiter.

Usage::

    limiter = RateLimiter(max_requests=10, window_ms=60_000)
    if limiter.can_make_request():
        converter.convert(text, "html")
"""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Optional

from mdconvert.errors import RateLimitExceeded


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """Admit at most *max_requests* within any trailing *window_ms*.

    State lives only in this instance; nothing is persisted.  The limiter
    is not thread-safe and expects a single calling thread.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_ms: float = 60_000,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if window_ms <= 0:
            raise ValueError("window_ms must be > 0")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock or _monotonic_ms
        self._requests: deque[float] = deque()

    # -- public API ---------------------------------------------------------

    def can_make_request(self) -> bool:
        """Record and admit a request if the window has room."""
        now = self._prune()
        if len(self._requests) >= self.max_requests:
            return False
        self._requests.append(now)
        return True

    def get_remaining_requests(self) -> int:
        self._prune()
        return max(0, self.max_requests - len(self._requests))

    def acquire(self) -> None:
        """Like :meth:`can_make_request` but raise when refused."""
        if not self.can_make_request():
            raise RateLimitExceeded(remaining=0, retry_after_ms=self.retry_after_ms())

    def retry_after_ms(self) -> float:
        """Milliseconds until the oldest request leaves the window."""
        now = self._prune()
        if len(self._requests) < self.max_requests or not self._requests:
            return 0.0
        return max(0.0, self._requests[0] + self.window_ms - now)

    def reset(self) -> None:
        self._requests.clear()

    # -- internals ----------------------------------------------------------

    def _prune(self) -> float:
        now = self._clock()
        while self._requests and now - self._requests[0] >= self.window_ms:
            self._requests.popleft()
        return now
