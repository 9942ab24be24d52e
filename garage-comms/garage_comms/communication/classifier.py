"""
Error Classifier
================
Maps raw provider errors to the normalized taxonomy and decides retryability.

Explicit per-provider code tables are consulted first. Codes that are not
mapped fall back to substring heuristics over the code and message.
"""

from typing import Optional, Dict, Tuple, Union

import httpx

from garage_comms.exceptions import ProviderError
from .models import ErrorType


TWILIO_ERROR_CODES: Dict[str, ErrorType] = {
    "20003": ErrorType.AUTHENTICATION,    # Authentication failed
    "20404": ErrorType.VALIDATION,        # Resource not found
    "20429": ErrorType.RATE_LIMIT,        # Too many requests
    "21211": ErrorType.VALIDATION,        # Invalid 'To' number
    "21212": ErrorType.VALIDATION,        # Invalid 'From' number
    "21408": ErrorType.POLICY_VIOLATION,  # Region not enabled
    "21609": ErrorType.VALIDATION,        # Invalid StatusCallback
    "21610": ErrorType.POLICY_VIOLATION,  # Recipient unsubscribed
    "21614": ErrorType.VALIDATION,        # Not a mobile number
    "21623": ErrorType.VALIDATION,        # Number of parameters exceeded
    "30001": ErrorType.RATE_LIMIT,        # Queue overflow
    "30002": ErrorType.POLICY_VIOLATION,  # Account suspended
    "30003": ErrorType.SERVICE_UNAVAILABLE,  # Unreachable handset
    "30007": ErrorType.POLICY_VIOLATION,  # Carrier filtering
    "63013": ErrorType.POLICY_VIOLATION,  # Channel policy violation
    "63016": ErrorType.POLICY_VIOLATION,  # Outside the session window
    "63018": ErrorType.POLICY_VIOLATION,
    "63021": ErrorType.RATE_LIMIT,
    "63024": ErrorType.VALIDATION,        # Invalid recipient
    "63032": ErrorType.POLICY_VIOLATION,
}

SENDGRID_STATUS_CODES: Dict[str, ErrorType] = {
    "400": ErrorType.VALIDATION,
    "401": ErrorType.AUTHENTICATION,
    "403": ErrorType.POLICY_VIOLATION,
    "413": ErrorType.VALIDATION,
    "429": ErrorType.RATE_LIMIT,
    "500": ErrorType.SERVICE_UNAVAILABLE,
    "502": ErrorType.SERVICE_UNAVAILABLE,
    "503": ErrorType.SERVICE_UNAVAILABLE,
    "504": ErrorType.SERVICE_UNAVAILABLE,
}

PROVIDER_ERROR_CODES: Dict[str, Dict[str, ErrorType]] = {
    "twilio": TWILIO_ERROR_CODES,
    "sendgrid": SENDGRID_STATUS_CODES,
}

# Known permanent provider codes: invalid numbers, opted-out recipients,
# suspended accounts, exhausted quotas.
NON_RETRYABLE_PROVIDER_CODES = frozenset({
    "21211", "21212", "21614", "21610", "21408", "21623", "21609",
    "63013", "63016", "63018", "63021", "63024", "63032",
    "20003", "20404", "30002", "30454", "63038", "90010",
})

NON_RETRYABLE_TYPES = frozenset({
    ErrorType.VALIDATION,
    ErrorType.AUTHENTICATION,
    ErrorType.POLICY_VIOLATION,
})

# Ordered: the first matching rule wins.
_RULES: Tuple[Tuple[ErrorType, Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]], ...] = (
    # (type, code contains, code startswith, message contains)
    (ErrorType.AUTHENTICATION, ("401", "20003"), (), ("authentication", "unauthorized")),
    (ErrorType.RATE_LIMIT, ("429", "63021"), (), ("rate limit", "too many")),
    (ErrorType.VALIDATION, (), ("400", "21"), ("invalid", "validation")),
    (ErrorType.POLICY_VIOLATION, ("403", "63018", "63032"), (), ("policy", "violation")),
    (ErrorType.SERVICE_UNAVAILABLE, ("500", "503"), (), ("unavailable", "timeout")),
    (ErrorType.NETWORK, (), (), ("network", "connection", "dns")),
)


def categorize_error(
    error_code: Optional[Union[str, int]] = None,
    error_message: Optional[str] = None,
    provider: Optional[str] = None,
) -> ErrorType:
    """
    Classify a provider error.

    Args:
        error_code: Provider error or HTTP status code
        error_message: Raw error message
        provider: Provider name ("twilio", "sendgrid") for table lookup

    Returns:
        Normalized ErrorType
    """
    code = str(error_code).strip().lower() if error_code is not None else ""
    message = (error_message or "").lower()

    if not code and not message:
        return ErrorType.UNKNOWN

    if provider and code:
        mapped = PROVIDER_ERROR_CODES.get(provider.lower(), {}).get(code)
        if mapped is not None:
            return mapped

    for error_type, code_contains, code_prefixes, message_contains in _RULES:
        if code and any(token in code for token in code_contains):
            return error_type
        if code and code_prefixes and code.startswith(code_prefixes):
            return error_type
        if message and any(token in message for token in message_contains):
            return error_type

    return ErrorType.UNKNOWN


def is_error_retryable(
    error_type: ErrorType,
    error_code: Optional[Union[str, int]] = None,
) -> bool:
    """Decide whether a classified error may be retried by the caller."""
    if error_type in NON_RETRYABLE_TYPES:
        return False

    if error_type == ErrorType.UNKNOWN and error_code is not None:
        return str(error_code).strip() not in NON_RETRYABLE_PROVIDER_CODES

    return True


def classify_exception(
    exc: BaseException,
    provider: Optional[str] = None,
) -> Tuple[ErrorType, Optional[str]]:
    """
    Classify an exception raised during a provider call.

    Returns:
        Tuple of (error_type, error_code)
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorType.SERVICE_UNAVAILABLE, None
    if isinstance(exc, httpx.TransportError):
        return ErrorType.NETWORK, None
    if isinstance(exc, ProviderError):
        code = exc.code or (str(exc.status_code) if exc.status_code else None)
        return categorize_error(code, exc.message, provider or exc.provider), code

    code = getattr(exc, "code", None)
    code = str(code) if code is not None else None
    return categorize_error(code, str(exc), provider), code
