"""
Communication Results and Error Classification
===============================================
Uniform outcome envelope for every delivery channel and the normalized
error taxonomy used to decide whether a failure may be retried.

Usage:
    from garage_comms.communication import categorize_error, is_error_retryable

    error_type = categorize_error("21211", "Invalid 'To' Phone Number")
    if is_error_retryable(error_type, "21211"):
        ...
"""

from .models import (
    ServiceType,
    ErrorType,
    ResultMetadata,
    CommunicationResult,
    METADATA_KEYS,
)
from .classifier import (
    categorize_error,
    is_error_retryable,
    classify_exception,
    PROVIDER_ERROR_CODES,
    TWILIO_ERROR_CODES,
    SENDGRID_STATUS_CODES,
    NON_RETRYABLE_PROVIDER_CODES,
    NON_RETRYABLE_TYPES,
)
from .results import create_communication_result, success_result, failure_result

__all__ = [
    # Models
    "ServiceType",
    "ErrorType",
    "ResultMetadata",
    "CommunicationResult",
    "METADATA_KEYS",
    # Classifier
    "categorize_error",
    "is_error_retryable",
    "classify_exception",
    "PROVIDER_ERROR_CODES",
    "TWILIO_ERROR_CODES",
    "SENDGRID_STATUS_CODES",
    "NON_RETRYABLE_PROVIDER_CODES",
    "NON_RETRYABLE_TYPES",
    # Factory
    "create_communication_result",
    "success_result",
    "failure_result",
]
