"""
In-Memory Rate Limiter
======================
Fixed window counter for development, tests and single-process deployments.
"""

import asyncio
import math
import time
from typing import Callable, Dict

from .models import RateLimitInfo, RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """
    Fixed window counter held in process memory.

    The window opens on the first hit for a key and closes at the stored
    ``reset_at``. Use RedisRateLimiter or SQLRateLimiter when several
    processes must share counters.
    """

    def __init__(
        self,
        rate: int = 5,
        window: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            rate: Number of hits allowed per window
            window: Window size in seconds
            clock: Time source returning Unix seconds
        """
        self.rate = rate
        self.window = window
        self._clock = clock
        self._buckets: Dict[str, Dict[str, float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str) -> RateLimitInfo:
        """
        Check if a hit is allowed and count it.

        Args:
            key: Unique identifier (e.g., phone + purpose)

        Returns:
            RateLimitInfo with decision and quota
        """
        async with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)

            if bucket is None or bucket["reset_at"] <= now:
                bucket = {"count": 0, "reset_at": now + self.window}
                self._buckets[key] = bucket

            reset_at = int(bucket["reset_at"])

            if bucket["count"] >= self.rate:
                return RateLimitInfo(
                    allowed=False,
                    remaining=0,
                    limit=self.rate,
                    reset_at=reset_at,
                    retry_after=max(1, math.ceil(bucket["reset_at"] - now)),
                )

            bucket["count"] += 1
            return RateLimitInfo(
                allowed=True,
                remaining=self.rate - int(bucket["count"]),
                limit=self.rate,
                reset_at=reset_at,
            )

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._buckets.pop(key, None)
