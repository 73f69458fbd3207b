from __future__ import annotations
import asyncio, time
from typing import Optional


class TokenBucket:
    """Async token bucket; one instance per upstream source, shared by its client."""

    def __init__(self, rate_per_sec: float, burst: int = 1):
        self.rate = max(float(rate_per_sec), 1e-6)
        self.capacity = max(1, int(burst))
        self.tokens = float(self.capacity)
        self.last = time.monotonic()
        # created on first acquire so it binds to the running loop
        self._lock: Optional[asyncio.Lock] = None

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last
        self.last = now
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)

    async def acquire(self, tokens: float = 1.0) -> None:
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            while True:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                await asyncio.sleep((tokens - self.tokens) / self.rate)


class NullLimiter:
    """Limiter that never waits."""

    async def acquire(self, tokens: float = 1.0) -> None:
        return None
