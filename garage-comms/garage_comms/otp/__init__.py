"""
OTP Issuance and Verification
=============================
Hashed one-time codes with per-recipient rate limiting, bounded attempts
and expiry.

Usage:
    from garage_comms.otp import OTPService, InMemoryOTPStore

    service = OTPService(InMemoryOTPStore(), limiter, secret, whatsapp=adapter)
    sent = await service.send_otp("+91", "9876543210", "registration")
    checked = await service.verify_otp("+91", "9876543210", "123456", "registration")
"""

from .models import OTPPurpose, OTPChannel, OTPStatus, OTPConfig, OTPRecord
from .hashing import generate_otp, hash_otp, verify_otp_hash
from .store import OTPStore, InMemoryOTPStore
from .sql_store import SQLOTPStore, OTPVerification
from .service import OTPService

__all__ = [
    # Models
    "OTPPurpose",
    "OTPChannel",
    "OTPStatus",
    "OTPConfig",
    "OTPRecord",
    # Hashing
    "generate_otp",
    "hash_otp",
    "verify_otp_hash",
    # Stores
    "OTPStore",
    "InMemoryOTPStore",
    "SQLOTPStore",
    "OTPVerification",
    # Engine
    "OTPService",
]
