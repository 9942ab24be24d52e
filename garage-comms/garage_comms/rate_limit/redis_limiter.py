"""
Redis Rate Limiter
==================
Redis-backed fixed window counter using a Lua script for atomic operations.
"""

import time
from typing import Optional

import structlog
from redis.exceptions import NoScriptError, RedisError

from .models import RateLimitInfo, RateLimiter

logger = structlog.get_logger(__name__)

# Lua script for an atomic check-and-increment in Redis
FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local rate = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local count = tonumber(redis.call('HGET', key, 'count') or '0')
local reset_at = tonumber(redis.call('HGET', key, 'reset_at') or '0')

if reset_at <= now then
    count = 0
    reset_at = now + window
end

if count >= rate then
    return {0, 0, rate, reset_at, reset_at - now}
end

count = count + 1
redis.call('HSET', key, 'count', count, 'reset_at', reset_at)
redis.call('EXPIREAT', key, reset_at)

return {1, rate - count, rate, reset_at, 0}
"""


class RedisRateLimiter(RateLimiter):
    """
    Redis-backed fixed window counter.

    Uses a Lua script so concurrent workers see one atomic check-and-increment.
    """

    def __init__(self, redis_client, rate: int = 5, window: int = 3600):
        """
        Args:
            redis_client: Async Redis client (redis.asyncio.Redis)
            rate: Hits per window
            window: Window size in seconds
        """
        self.redis = redis_client
        self.rate = rate
        self.window = window
        self._script_sha: Optional[str] = None

    async def _ensure_script(self) -> str:
        """Load Lua script into Redis if needed."""
        if self._script_sha is None:
            self._script_sha = await self.redis.script_load(FIXED_WINDOW_SCRIPT)
        return self._script_sha

    async def _eval(self, key: str, now: int):
        script_sha = await self._ensure_script()
        return await self.redis.evalsha(script_sha, 1, key, self.rate, self.window, now)

    async def hit(self, key: str) -> RateLimitInfo:
        """
        Check if a hit is allowed using Redis.

        Args:
            key: Rate limit key

        Returns:
            RateLimitInfo with decision
        """
        now = int(time.time())

        try:
            try:
                result = await self._eval(key, now)
            except NoScriptError:
                # Script cache flushed (Redis restart), load it again
                self._script_sha = None
                result = await self._eval(key, now)

            allowed, remaining, limit, reset_at, retry_after = result

            return RateLimitInfo(
                allowed=bool(int(allowed)),
                remaining=int(remaining),
                limit=int(limit),
                reset_at=int(reset_at),
                retry_after=int(retry_after) if int(retry_after) else None,
            )
        except RedisError as e:
            logger.error("rate_limit_check_failed", key=key, error=str(e))
            # Fail open in case of Redis issues
            return RateLimitInfo(
                allowed=True,
                remaining=self.rate,
                limit=self.rate,
                reset_at=now + self.window,
            )

    async def reset(self, key: str) -> None:
        await self.redis.delete(key)
