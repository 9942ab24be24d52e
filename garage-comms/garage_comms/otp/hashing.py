"""
OTP Hashing Utilities
=====================
Code generation and keyed hashing for OTP storage.
"""

import secrets
import hashlib
import hmac


def generate_otp(length: int = 6) -> str:
    """
    Generate a secure random numeric OTP.

    Args:
        length: Number of digits

    Returns:
        Zero-padded OTP string
    """
    return str(secrets.randbelow(10 ** length)).zfill(length)


def hash_otp(otp: str, secret: str, *, phone: str, purpose: str) -> str:
    """
    HMAC-SHA256 of an OTP keyed by the server secret.

    The recipient and purpose are part of the message, so a hash copied
    to another record never verifies.

    Args:
        otp: Plain OTP
        secret: Server side HMAC key
        phone: E.164 recipient
        purpose: OTP purpose value

    Returns:
        Hex digest
    """
    message = f"{otp}:{phone}:{purpose}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_otp_hash(otp: str, secret: str, stored_hash: str, *, phone: str, purpose: str) -> bool:
    """
    Verify an OTP against its hash.

    Uses constant-time comparison to prevent timing attacks.
    """
    computed_hash = hash_otp(otp, secret, phone=phone, purpose=purpose)
    return hmac.compare_digest(computed_hash, stored_hash)
