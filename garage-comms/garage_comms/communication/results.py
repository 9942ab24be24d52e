"""
Result Factory
==============
Builds CommunicationResult instances with derived classification.
"""

from typing import Optional, Union

from .models import CommunicationResult, ErrorType, ResultMetadata, ServiceType
from .classifier import categorize_error, is_error_retryable


def create_communication_result(
    service: ServiceType,
    success: bool,
    message: str,
    *,
    error_code: Optional[Union[str, int]] = None,
    error_type: Optional[ErrorType] = None,
    retryable: Optional[bool] = None,
    retry_count: Optional[int] = None,
    total_attempts: Optional[int] = None,
    metadata: Optional[ResultMetadata] = None,
    provider: Optional[str] = None,
) -> CommunicationResult:
    """
    Create a result, classifying failures that carry no explicit error type.

    Args:
        service: Service that produced the result
        success: Whether delivery/verification succeeded
        message: Human readable message
        error_code: Provider error code, if any
        error_type: Explicit error type (skips classification)
        retryable: Explicit retry verdict (skips the retry policy)
        provider: Provider name used for code table lookup

    Returns:
        CommunicationResult
    """
    code = str(error_code) if error_code is not None else None

    if not success:
        if not message:
            message = "Communication failed"
        if error_type is None:
            error_type = categorize_error(code, message, provider)
        if retryable is None:
            retryable = is_error_retryable(error_type, code)

    return CommunicationResult(
        success=success,
        message=message,
        service=service,
        error_code=code,
        error_type=error_type,
        retryable=retryable,
        retry_count=retry_count,
        total_attempts=total_attempts,
        metadata=metadata or ResultMetadata(),
    )


def success_result(service: ServiceType, message: str, **metadata) -> CommunicationResult:
    """Shortcut for a successful result."""
    return create_communication_result(
        service, True, message, metadata=ResultMetadata(**metadata),
    )


def failure_result(
    service: ServiceType,
    message: str,
    *,
    error_code: Optional[Union[str, int]] = None,
    error_type: Optional[ErrorType] = None,
    retryable: Optional[bool] = None,
    provider: Optional[str] = None,
    **metadata,
) -> CommunicationResult:
    """Shortcut for a failed result."""
    return create_communication_result(
        service,
        False,
        message,
        error_code=error_code,
        error_type=error_type,
        retryable=retryable,
        provider=provider,
        metadata=ResultMetadata(**metadata),
    )
