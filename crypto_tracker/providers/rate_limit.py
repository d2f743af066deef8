"""Token bucket admission gate shared by all calls of a price source."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .base import RateLimitError


class TokenBucket:
    """Token bucket rate limiter.

    Tokens refill continuously at ``rate`` per second up to ``capacity``.
    The default capacity of one token means calls are spaced ``1 / rate``
    seconds apart with no bursts.
    """

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        self._rate = rate
        self._capacity = capacity
        self._clock = clock
        self._tokens = float(capacity)
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    def acquire(self, cancel: threading.Event | None = None) -> None:
        """Block until a token is available.

        Raises:
            RateLimitError: If ``cancel`` is set before a token could be taken.
        """

        while True:
            if cancel is not None and cancel.is_set():
                raise RateLimitError("rate limit wait cancelled")

            with self._lock:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                wait_time = (1 - self._tokens) / self._rate

            if cancel is None:
                time.sleep(wait_time)
            elif cancel.wait(wait_time):
                raise RateLimitError("rate limit wait cancelled")

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(now - self._last_refill, 0.0)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now
