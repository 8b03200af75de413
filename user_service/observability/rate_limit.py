from __future__ import annotations

from threading import Lock
from time import monotonic
from typing import Callable


class TokenBucket:
    """Token bucket shared by every request.

    Starts full at `burst` tokens and refills at `rate` tokens per second, never
    beyond `burst`. `allow()` takes one token or refuses immediately.
    """

    def __init__(self, rate: float, burst: int, clock: Callable[[], float] = monotonic) -> None:
        if rate < 0:
            raise ValueError("rate must be >= 0")
        if burst < 0:
            raise ValueError("burst must be >= 0")
        self.rate = float(rate)
        self.burst = int(burst)
        self._clock = clock
        self._lock = Lock()
        self._tokens = float(burst)
        self._last = clock()

    def allow(self) -> bool:
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self._last = now
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    @property
    def tokens(self) -> float:
        with self._lock:
            return self._tokens
