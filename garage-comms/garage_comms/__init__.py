"""
Garage Comms Library
====================
Notification delivery for the garage booking platform: OTP verification,
WhatsApp/SMS/email channels with circuit breakers, retry and fallback,
and upload file validation.
"""

__version__ = "0.1.0"

# Errors
from garage_comms.exceptions import (
    GarageCommsError,
    ConfigurationError,
    InvalidPhoneNumber,
    ProviderError,
)

# Configuration
from garage_comms.config import Settings, RetryConfig, check_production_requirements

# Logging
from garage_comms.log import configure_logging

# Communication results
from garage_comms.communication import (
    ServiceType,
    ErrorType,
    CommunicationResult,
    categorize_error,
    is_error_retryable,
    create_communication_result,
)

# Phone numbers
from garage_comms.phone import (
    format_e164,
    format_whatsapp_number,
    validate_e164,
    validate_phone_number,
)

# Circuit Breaker
from garage_comms.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    BreakerRegistry,
)

# Rate Limiting
from garage_comms.rate_limit import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    SQLRateLimiter,
    RateLimitInfo,
)

# OTP
from garage_comms.otp import (
    OTPService,
    OTPPurpose,
    OTPChannel,
    OTPConfig,
    InMemoryOTPStore,
    SQLOTPStore,
)

# Channels
from garage_comms.channels import (
    WhatsAppAdapter,
    SMSAdapter,
    EmailAdapter,
    NotificationDispatcher,
    Recipient,
    NotificationChannel,
)

# Files
from garage_comms.files import (
    FileValidator,
    FileValidationResult,
    SecurityIssue,
    validate_uploaded_file,
    validate_file_size,
)

# Health
from garage_comms.health import create_health_router

__all__ = [
    # Errors
    "GarageCommsError",
    "ConfigurationError",
    "InvalidPhoneNumber",
    "ProviderError",
    # Configuration
    "Settings",
    "RetryConfig",
    "check_production_requirements",
    # Logging
    "configure_logging",
    # Communication results
    "ServiceType",
    "ErrorType",
    "CommunicationResult",
    "categorize_error",
    "is_error_retryable",
    "create_communication_result",
    # Phone numbers
    "format_e164",
    "format_whatsapp_number",
    "validate_e164",
    "validate_phone_number",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "BreakerRegistry",
    # Rate Limiting
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "SQLRateLimiter",
    "RateLimitInfo",
    # OTP
    "OTPService",
    "OTPPurpose",
    "OTPChannel",
    "OTPConfig",
    "InMemoryOTPStore",
    "SQLOTPStore",
    # Channels
    "WhatsAppAdapter",
    "SMSAdapter",
    "EmailAdapter",
    "NotificationDispatcher",
    "Recipient",
    "NotificationChannel",
    # Files
    "FileValidator",
    "FileValidationResult",
    "SecurityIssue",
    "validate_uploaded_file",
    "validate_file_size",
    # Health
    "create_health_router",
]
