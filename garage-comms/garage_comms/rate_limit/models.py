"""
Rate Limit Models
=================
Data models for rate limiting results and the limiter interface.
"""

from abc import ABC, abstractmethod
from typing import Optional
from dataclasses import dataclass


@dataclass
class RateLimitInfo:
    """Rate limit check result with quota information."""
    allowed: bool
    remaining: int
    limit: int
    reset_at: int  # Unix timestamp
    retry_after: Optional[int] = None  # Seconds until retry allowed


class RateLimiter(ABC):
    """
    Send counter keyed by recipient.

    ``hit`` must check and increment in one atomic step: two concurrent
    requests may never both pass when only one slot is left.
    """

    rate: int
    window: int

    @abstractmethod
    async def hit(self, key: str) -> RateLimitInfo:
        """Consume one slot for ``key`` if the window allows it."""

    @abstractmethod
    async def reset(self, key: str) -> None:
        """Forget the counter for ``key``."""


def otp_rate_limit_key(country_code: str, phone: str, purpose: str) -> str:
    """Generate the rate limit key for OTP sends to one recipient and purpose."""
    return f"ratelimit:otp:{country_code}{phone}:{purpose}"
