"""Token-bucket rate limiter for politeness toward free public APIs.

Nominatim allows one request per second and DuckDuckGo throttles bursts, so
outbound calls to both acquire a token first. The clock and sleep functions
are injectable so tests can drive the limiter without wall-clock time.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable


class RateLimiter:
    """Async token bucket.

    ``capacity`` tokens are available up front and refill at
    ``refill_per_second``. With capacity 1 and a rate of 1/interval, the
    first acquire returns immediately and every later one waits until
    ``interval`` seconds have passed since the previous token was taken.
    """

    def __init__(
        self,
        capacity: float = 1.0,
        refill_per_second: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity <= 0 or refill_per_second <= 0:
            raise ValueError("capacity and refill_per_second must be positive")
        self.capacity = capacity
        self.refill_per_second = refill_per_second
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._updated_at = clock()
        self._lock = asyncio.Lock()

    @classmethod
    def every(cls, interval_seconds: float, **kwargs) -> RateLimiter:
        """One call per ``interval_seconds``, no burst."""
        return cls(capacity=1.0, refill_per_second=1.0 / interval_seconds, **kwargs)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_per_second)
        self._updated_at = now

    async def acquire(self) -> float:
        """Take one token, waiting if needed. Returns seconds spent waiting."""
        waited = 0.0
        async with self._lock:
            self._refill()
            while self._tokens < 1.0:
                delay = (1.0 - self._tokens) / self.refill_per_second
                await self._sleep(delay)
                waited += delay
                self._refill()
            self._tokens -= 1.0
        return waited
