"""
Rate Limiting Module
====================
Per-recipient send counters with in-memory, Redis and SQL backends.
"""

from .models import RateLimitInfo, RateLimiter, otp_rate_limit_key
from .in_memory import InMemoryRateLimiter
from .redis_limiter import RedisRateLimiter, FIXED_WINDOW_SCRIPT
from .sql_limiter import SQLRateLimiter, RateLimitCounter

__all__ = [
    # Models
    "RateLimitInfo",
    "RateLimiter",
    "otp_rate_limit_key",
    # Limiters
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "SQLRateLimiter",
    # Storage
    "RateLimitCounter",
    # Scripts
    "FIXED_WINDOW_SCRIPT",
]
