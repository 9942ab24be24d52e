"""
OTP Models
==========
Data models and enums for OTP issuance and verification.
"""

from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass
from enum import Enum


class OTPPurpose(str, Enum):
    """What the verified phone number is used for."""
    REGISTRATION = "registration"
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


class OTPChannel(str, Enum):
    """OTP delivery channels."""
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    SMS = "sms"


class OTPStatus(str, Enum):
    """Lifecycle of an issued code. Everything except ISSUED is terminal."""
    ISSUED = "issued"
    VERIFIED = "verified"
    EXHAUSTED = "exhausted"
    EXPIRED = "expired"
    INVALIDATED = "invalidated"  # Replaced by a newer code or never delivered


@dataclass
class OTPConfig:
    """Configuration for OTP issuance."""
    length: int = 6
    expiry_seconds: int = 300  # 5 minutes
    max_attempts: int = 3
    max_sends_per_window: int = 5
    rate_limit_window_seconds: int = 3600
    retention_seconds: int = 86400  # Keep terminal records for a day


@dataclass
class OTPRecord:
    """One issued one-time code. Only the HMAC of the code is kept."""
    id: str
    phone: str
    country_code: str
    purpose: OTPPurpose
    code_hash: str
    expires_at: datetime
    created_at: datetime
    channel: OTPChannel = OTPChannel.WHATSAPP
    email: Optional[str] = None
    status: OTPStatus = OTPStatus.ISSUED
    attempts: int = 0
    max_attempts: int = 3
    verified_at: Optional[datetime] = None

    @property
    def verified(self) -> bool:
        return self.status == OTPStatus.VERIFIED

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) > self.expires_at

    def is_terminal(self, now: Optional[datetime] = None) -> bool:
        return (
            self.status != OTPStatus.ISSUED
            or self.attempts >= self.max_attempts
            or self.is_expired(now)
        )

    def seconds_until_expiry(self, now: Optional[datetime] = None) -> int:
        remaining = self.expires_at - (now or datetime.now(timezone.utc))
        return max(0, int(remaining.total_seconds()))
