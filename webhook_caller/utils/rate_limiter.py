"""
Fixed-window rate limiter for webhook calls.

Each identity gets ``limit`` calls per window of ``window_seconds``. The
window starts at the first call and is replaced wholesale once it has
elapsed, so up to ``2 * limit`` calls can land around a window boundary.
Counters are per process; a shared store must be supplied for limits that
hold across instances.
"""
import math
import time
import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from ..models.rate_limiting import RateLimitConfig, RateLimitCounter, RateLimitInfo
from ..models.errors import RateLimitedError


class RateLimitStore(ABC):
    """Abstract storage backend for fixed-window counters."""

    @abstractmethod
    async def consume(
        self, key: str, limit: int, window_seconds: float, now: float
    ) -> Tuple[bool, RateLimitCounter]:
        """
        Atomically apply one call to the counter for ``key``.

        Returns whether the call is allowed and the counter state after it.
        """

    @abstractmethod
    async def get(self, key: str) -> Optional[RateLimitCounter]:
        """Get the counter for key without modifying it."""

    @abstractmethod
    async def reset(self, key: Optional[str] = None) -> None:
        """Drop the counter for key, or every counter when key is None."""


class MemoryStore(RateLimitStore):
    """In-memory counter storage. Entries are never evicted."""

    def __init__(self):
        self._store: Dict[str, RateLimitCounter] = {}
        self._lock = asyncio.Lock()

    async def consume(
        self, key: str, limit: int, window_seconds: float, now: float
    ) -> Tuple[bool, RateLimitCounter]:
        async with self._lock:
            counter = self._store.get(key)

            if counter is None or now >= counter.window_reset_at:
                counter = RateLimitCounter(count=1, window_reset_at=now + window_seconds)
                self._store[key] = counter
                return True, RateLimitCounter(counter.count, counter.window_reset_at)

            if counter.count >= limit:
                return False, RateLimitCounter(counter.count, counter.window_reset_at)

            counter.count += 1
            return True, RateLimitCounter(counter.count, counter.window_reset_at)

    async def get(self, key: str) -> Optional[RateLimitCounter]:
        async with self._lock:
            counter = self._store.get(key)
            if counter is None:
                return None
            return RateLimitCounter(counter.count, counter.window_reset_at)

    async def reset(self, key: Optional[str] = None) -> None:
        async with self._lock:
            if key is None:
                self._store.clear()
            else:
                self._store.pop(key, None)


class FixedWindowRateLimiter:
    """Per-identity fixed-window limiter."""

    def __init__(
        self,
        store: RateLimitStore,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.config = config
        self._clock = clock

    async def consume(self, key: str) -> RateLimitInfo:
        """Record one call for key and report whether it is allowed."""
        now = self._clock()
        allowed, counter = await self.store.consume(
            key, self.config.limit, self.config.window_seconds, now
        )
        reset_in = max(0.0, counter.window_reset_at - now)

        return RateLimitInfo(
            allowed=allowed,
            limit=self.config.limit,
            remaining=max(0, self.config.limit - counter.count),
            reset_in=reset_in,
            retry_after=None if allowed else max(1, math.ceil(reset_in)),
        )

    async def should_throttle(self, key: str) -> bool:
        """True if the call for key must be rejected."""
        info = await self.consume(key)
        return not info.allowed

    async def check(self, key: str) -> RateLimitInfo:
        """Consume a call for key, raising RateLimitedError when throttled."""
        info = await self.consume(key)
        if not info.allowed:
            raise RateLimitedError(limit=info.limit, retry_after=info.retry_after)
        return info
