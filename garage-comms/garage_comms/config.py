"""
Configuration
=============
Environment-driven settings for channels, OTP and uploads.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from garage_comms.exceptions import ConfigurationError

DEFAULT_OTP_SECRET = "default-otp-secret-change-in-production"
DEFAULT_FROM_EMAIL = "noreply@ronakmotorgarage.com"
TWILIO_SANDBOX_WHATSAPP = "whatsapp:+14155238886"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_environment() -> str:
    return (_env("APP_ENV") or _env("ENVIRONMENT") or "development").lower()


def is_production() -> bool:
    return get_environment() == "production"


@dataclass
class TwilioSettings:
    """Twilio credentials shared by the WhatsApp and SMS adapters."""
    account_sid: Optional[str] = field(default_factory=lambda: _env("TWILIO_ACCOUNT_SID"))
    auth_token: Optional[str] = field(default_factory=lambda: _env("TWILIO_AUTH_TOKEN"))
    whatsapp_from: str = field(
        default_factory=lambda: _env("TWILIO_WHATSAPP_NUMBER", TWILIO_SANDBOX_WHATSAPP)
    )
    sms_from: Optional[str] = field(default_factory=lambda: _env("TWILIO_SMS_NUMBER"))
    api_base_url: str = "https://api.twilio.com/2010-04-01"
    timeout: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)


@dataclass
class SendGridSettings:
    """SendGrid credentials for the email adapter."""
    api_key: Optional[str] = field(default_factory=lambda: _env("SENDGRID_API_KEY"))
    from_email: str = field(
        default_factory=lambda: _env("SENDGRID_FROM_EMAIL", DEFAULT_FROM_EMAIL)
    )
    api_base_url: str = "https://api.sendgrid.com"
    timeout: float = 15.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class RetryConfig:
    """Caller level retry policy for one channel."""
    initial_delay: float = 1.0       # Seconds
    max_delay: float = 60.0          # Seconds
    max_retries: int = 3             # Retries after the first attempt
    backoff_multiplier: float = 2.0

    @classmethod
    def from_env(cls, prefix: str) -> "RetryConfig":
        """Read ``{PREFIX}_RETRY_DELAY`` style variables (delays in milliseconds)."""
        return cls(
            initial_delay=_env_int(f"{prefix}_RETRY_DELAY", 1000) / 1000,
            max_delay=_env_int(f"{prefix}_MAX_RETRY_DELAY", 60000) / 1000,
            max_retries=_env_int(f"{prefix}_MAX_RETRIES", 3),
            backoff_multiplier=_env_float(f"{prefix}_BACKOFF_MULTIPLIER", 2.0),
        )


@dataclass
class BreakerSettings:
    fail_threshold: int = 5
    recovery_minutes: float = 5.0

    @classmethod
    def from_env(cls, prefix: str) -> "BreakerSettings":
        return cls(
            fail_threshold=_env_int(f"{prefix}_CIRCUIT_THRESHOLD", 5),
            recovery_minutes=_env_float(f"{prefix}_CIRCUIT_RECOVERY_MIN", 5.0),
        )


@dataclass
class OTPSettings:
    secret: str = field(default_factory=lambda: _env("OTP_SECRET", DEFAULT_OTP_SECRET))
    expiry_seconds: int = field(default_factory=lambda: _env_int("OTP_EXPIRY_SECONDS", 300))
    max_attempts: int = field(default_factory=lambda: _env_int("OTP_MAX_ATTEMPTS", 3))
    max_sends_per_hour: int = field(default_factory=lambda: _env_int("OTP_MAX_SENDS_PER_HOUR", 5))


@dataclass
class FallbackSettings:
    """Which channels may stand in when WhatsApp delivery fails."""
    sms_enabled: bool = field(
        default_factory=lambda: _env_bool("WHATSAPP_ENABLE_SMS_FALLBACK", False)
    )
    email_enabled: bool = field(
        default_factory=lambda: _env_bool("WHATSAPP_ENABLE_EMAIL_FALLBACK", True)
    )


@dataclass
class Settings:
    """All settings, read from the environment at construction time."""
    environment: str = field(default_factory=get_environment)
    twilio: TwilioSettings = field(default_factory=TwilioSettings)
    sendgrid: SendGridSettings = field(default_factory=SendGridSettings)
    otp: OTPSettings = field(default_factory=OTPSettings)
    fallback: FallbackSettings = field(default_factory=FallbackSettings)
    whatsapp_retry: RetryConfig = field(default_factory=lambda: RetryConfig.from_env("WHATSAPP"))
    email_retry: RetryConfig = field(default_factory=lambda: RetryConfig.from_env("EMAIL"))
    sms_retry: RetryConfig = field(default_factory=lambda: RetryConfig.from_env("SMS"))
    otp_retry: RetryConfig = field(default_factory=lambda: RetryConfig.from_env("OTP"))
    whatsapp_breaker: BreakerSettings = field(
        default_factory=lambda: BreakerSettings.from_env("WHATSAPP")
    )
    upload_max_bytes: int = field(
        default_factory=lambda: _env_int("UPLOAD_MAX_BYTES", 10 * 1024 * 1024)
    )
    database_url: Optional[str] = field(default_factory=lambda: _env("DATABASE_URL"))
    redis_url: Optional[str] = field(default_factory=lambda: _env("REDIS_URL"))

    @property
    def production(self) -> bool:
        return self.environment == "production"


def check_production_requirements(settings: Settings) -> None:
    """
    Refuse to start a production process with development defaults.

    Raises:
        ConfigurationError: naming the first missing requirement
    """
    if not settings.production:
        return
    if not settings.otp.secret or settings.otp.secret == DEFAULT_OTP_SECRET:
        raise ConfigurationError("OTP_SECRET must be set in production")
    if not settings.twilio.configured:
        raise ConfigurationError(
            "TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN must be set in production"
        )
