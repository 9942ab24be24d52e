"""
Communication Models
====================
Result envelope shared by every channel adapter and the OTP engine.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any


class ServiceType(str, Enum):
    """Delivery service that produced a result."""
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    OTP = "otp"
    SMS = "sms"


class ErrorType(str, Enum):
    """Normalized error taxonomy."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    SERVICE_UNAVAILABLE = "service_unavailable"
    POLICY_VIOLATION = "policy_violation"
    NETWORK = "network"
    UNKNOWN = "unknown"


# Metadata attribute -> wire key. Also the set of legacy flat mirror fields.
METADATA_KEYS: Dict[str, str] = {
    "message_sid": "messageSid",
    "email_id": "emailId",
    "status_code": "statusCode",
    "final_failure": "finalFailure",
    "rate_limited": "rateLimited",
    "retry_after": "retryAfter",
    "expires_in": "expiresIn",
    "attempts": "attempts",
    "max_attempts": "maxAttempts",
    "expired": "expired",
    "channel_used": "channelUsed",
    "fallback_used": "fallbackUsed",
    "original_error": "originalError",
    "fallback_attempted": "fallbackAttempted",
    "circuit_breaker_open": "circuitBreakerOpen",
    "development_mode": "developmentMode",
}


@dataclass
class ResultMetadata:
    """Channel specific details attached to a result."""
    message_sid: Optional[str] = None
    email_id: Optional[str] = None
    status_code: Optional[int] = None
    final_failure: Optional[bool] = None
    rate_limited: Optional[bool] = None
    retry_after: Optional[int] = None
    expires_in: Optional[int] = None
    attempts: Optional[int] = None
    max_attempts: Optional[int] = None
    expired: Optional[bool] = None
    channel_used: Optional[str] = None
    fallback_used: Optional[str] = None
    original_error: Optional[str] = None
    fallback_attempted: Optional[bool] = None
    circuit_breaker_open: Optional[bool] = None
    development_mode: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                data[METADATA_KEYS[f.name]] = value
        return data


@dataclass
class CommunicationResult:
    """Outcome of one delivery or verification attempt."""
    success: bool
    message: str
    service: ServiceType
    error_code: Optional[str] = None
    error_type: Optional[ErrorType] = None
    retryable: Optional[bool] = None
    retry_count: Optional[int] = None
    total_attempts: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: ResultMetadata = field(default_factory=ResultMetadata)

    @property
    def circuit_open(self) -> bool:
        return bool(self.metadata.circuit_breaker_open)

    def with_attempts(self, retry_count: int, total_attempts: int) -> "CommunicationResult":
        """Copy of this result carrying caller retry bookkeeping."""
        return replace(self, retry_count=retry_count, total_attempts=total_attempts)

    def with_metadata(self, **values) -> "CommunicationResult":
        """Copy of this result with metadata fields updated."""
        return replace(self, metadata=replace(self.metadata, **values))

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation with ``None`` fields omitted."""
        data: Dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "service": self.service.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error_code is not None:
            data["errorCode"] = self.error_code
        if self.error_type is not None:
            data["errorType"] = self.error_type.value
        if self.retryable is not None:
            data["retryable"] = self.retryable
        if self.retry_count is not None:
            data["retryCount"] = self.retry_count
        if self.total_attempts is not None:
            data["totalAttempts"] = self.total_attempts
        data["metadata"] = self.metadata.to_dict()
        return data

    def to_legacy_dict(self) -> Dict[str, Any]:
        """
        Structured representation plus the deprecated flat fields.

        Older API consumers read ``rateLimited``, ``expiresIn`` etc. from the
        top level. They are generated from metadata so both views agree.
        """
        data = self.to_dict()
        data.update(data["metadata"])
        if not self.success:
            data["error"] = self.message
        return data
