"""
OTP Service
===========
Issues, delivers and verifies one-time codes per phone and purpose.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Callable, Union, TYPE_CHECKING

import structlog

from garage_comms import metrics
from garage_comms.channels import (
    BaseChannelAdapter,
    EmailAdapter,
    MessageType,
    OutboundMessage,
    SMSAdapter,
    WhatsAppAdapter,
    is_valid_email,
    templates,
)
from garage_comms.communication import (
    CommunicationResult,
    ErrorType,
    ServiceType,
    categorize_error,
    failure_result,
    success_result,
)
from garage_comms.config import RetryConfig, Settings
from garage_comms.exceptions import ConfigurationError
from garage_comms.log import mask_phone
from garage_comms.phone import digits_only, normalize_phone, validate_phone_number
from garage_comms.rate_limit import RateLimiter, otp_rate_limit_key
from .hashing import generate_otp, hash_otp, verify_otp_hash
from .models import OTPChannel, OTPConfig, OTPPurpose, OTPRecord, OTPStatus
from .store import OTPStore

if TYPE_CHECKING:
    from garage_comms.channels import NotificationDispatcher

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OTPService:
    """
    One active code per (phone, country code, purpose).

    A new send replaces any unconsumed code for the same key. A record
    becomes terminal once verified, after ``max_attempts`` verifications,
    or when it expires. A code whose delivery failed is invalidated at
    once: it never reached the user, so nothing may verify against it.
    """

    def __init__(
        self,
        store: OTPStore,
        rate_limiter: RateLimiter,
        secret: str,
        whatsapp: Optional[WhatsAppAdapter] = None,
        email: Optional[EmailAdapter] = None,
        sms: Optional[SMSAdapter] = None,
        config: Optional[OTPConfig] = None,
        dispatcher: Optional["NotificationDispatcher"] = None,
        retry: Optional[RetryConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            store: OTP record storage
            rate_limiter: Send counter enforcing the config send ceiling and window
            secret: HMAC key for code hashes
            whatsapp/email/sms: Channel adapters (default to the dispatcher's)
            dispatcher: When given, deliveries retry per ``retry``
            clock: Returns the current aware UTC datetime

        Raises:
            ConfigurationError: when the limiter disagrees with the send ceiling
        """
        if not secret:
            raise ValueError("OTP secret is required")
        self.config = config or OTPConfig()
        if (rate_limiter.rate, rate_limiter.window) != (
            self.config.max_sends_per_window,
            self.config.rate_limit_window_seconds,
        ):
            raise ConfigurationError(
                f"OTP rate limiter allows {rate_limiter.rate} sends per {rate_limiter.window}s, "
                f"configured ceiling is {self.config.max_sends_per_window} per "
                f"{self.config.rate_limit_window_seconds}s"
            )
        self.store = store
        self.rate_limiter = rate_limiter
        self._secret = secret
        self.dispatcher = dispatcher
        self.whatsapp = whatsapp or (dispatcher.whatsapp if dispatcher else None)
        self.email = email or (dispatcher.email if dispatcher else None)
        self.sms = sms or (dispatcher.sms if dispatcher else None)
        self.retry = retry
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: OTPStore,
        rate_limiter: RateLimiter,
        dispatcher: "NotificationDispatcher",
    ) -> "OTPService":
        config = OTPConfig(
            expiry_seconds=settings.otp.expiry_seconds,
            max_attempts=settings.otp.max_attempts,
            max_sends_per_window=settings.otp.max_sends_per_hour,
        )
        return cls(
            store,
            rate_limiter,
            settings.otp.secret,
            config=config,
            dispatcher=dispatcher,
            retry=settings.otp_retry,
        )

    @property
    def expiry_minutes(self) -> int:
        return max(1, self.config.expiry_seconds // 60)

    def _adapter_for(self, channel: OTPChannel) -> Optional[BaseChannelAdapter]:
        return {
            OTPChannel.WHATSAPP: self.whatsapp,
            OTPChannel.EMAIL: self.email,
            OTPChannel.SMS: self.sms,
        }[channel]

    def _build_message(self, channel: OTPChannel, to: str, code: str) -> OutboundMessage:
        if channel == OTPChannel.EMAIL:
            subject, text, html = templates.render_otp_email(code, self.expiry_minutes)
            return OutboundMessage(
                to=to, body=text, subject=subject, html=html, message_type=MessageType.OTP
            )
        return OutboundMessage(
            to=to,
            body=templates.render_otp_message(code, self.expiry_minutes),
            message_type=MessageType.OTP,
        )

    async def _deliver(self, adapter: BaseChannelAdapter, message: OutboundMessage) -> CommunicationResult:
        if self.dispatcher is not None:
            return await self.dispatcher.deliver(adapter, message, self.retry)
        return await adapter.send(message)

    def _invalid(self, message: str) -> CommunicationResult:
        return failure_result(
            ServiceType.OTP, message, error_type=ErrorType.VALIDATION, retryable=False
        )

    async def send_otp(
        self,
        country_code: str,
        phone: str,
        purpose: Union[OTPPurpose, str],
        channel: Union[OTPChannel, str] = OTPChannel.WHATSAPP,
        email: Optional[str] = None,
    ) -> CommunicationResult:
        """
        Issue a code and deliver it.

        Returns:
            CommunicationResult with ``expires_in`` on success and
            ``rate_limited`` when the send ceiling was reached
        """
        try:
            purpose = OTPPurpose(purpose)
            channel = OTPChannel(channel)
        except ValueError as e:
            return self._invalid(str(e))

        validation = validate_phone_number(phone, country_code)
        if not validation.valid:
            return self._invalid(validation.message)

        if channel == OTPChannel.EMAIL and not is_valid_email(email):
            return self._invalid("A valid email address is required for email OTP")

        adapter = self._adapter_for(channel)
        if adapter is None or not adapter.available:
            return failure_result(
                ServiceType.OTP,
                f"OTP delivery via {channel.value} is not available",
                error_type=ErrorType.SERVICE_UNAVAILABLE,
                retryable=False,
            )

        try:
            return await self._issue(country_code, phone, purpose, channel, email, adapter)
        except Exception as e:
            logger.error(
                "otp_send_error",
                phone=mask_phone(phone),
                purpose=purpose.value,
                error=str(e),
                exc_info=True,
            )
            error_type = categorize_error(None, str(e))
            return failure_result(
                ServiceType.OTP,
                f"Failed to send OTP via {channel.value}. Please try again later.",
                error_type=error_type,
                retryable=error_type != ErrorType.VALIDATION,
            )

    async def _issue(
        self,
        country_code: str,
        phone: str,
        purpose: OTPPurpose,
        channel: OTPChannel,
        email: Optional[str],
        adapter: BaseChannelAdapter,
    ) -> CommunicationResult:
        country_code = f"+{digits_only(country_code)}"
        national = normalize_phone(phone, country_code)
        e164 = f"{country_code}{national}"

        limit = await self.rate_limiter.hit(
            otp_rate_limit_key(country_code, national, purpose.value)
        )
        if not limit.allowed:
            logger.warning(
                "otp_rate_limited",
                phone=mask_phone(e164),
                purpose=purpose.value,
                retry_after=limit.retry_after,
            )
            metrics.record_otp_event("rate_limited")
            return failure_result(
                ServiceType.OTP,
                "Too many OTP requests. Please wait before requesting another code.",
                error_type=ErrorType.RATE_LIMIT,
                rate_limited=True,
                retry_after=limit.retry_after,
            )

        code = generate_otp(self.config.length)
        now = self._clock()
        record = OTPRecord(
            id=str(uuid.uuid4()),
            phone=national,
            country_code=country_code,
            purpose=purpose,
            code_hash=hash_otp(code, self._secret, phone=e164, purpose=purpose.value),
            expires_at=now + timedelta(seconds=self.config.expiry_seconds),
            created_at=now,
            channel=channel,
            email=email,
            max_attempts=self.config.max_attempts,
        )
        replaced = await self.store.replace_active(record)
        if replaced:
            logger.info("otp_replaced_previous", phone=mask_phone(e164), count=replaced)

        to = email if channel == OTPChannel.EMAIL else e164
        delivery = await self._deliver(adapter, self._build_message(channel, to, code))

        if not delivery.success:
            await self.store.set_status(record.id, OTPStatus.INVALIDATED)
            metrics.record_otp_event("delivery_failed")
            logger.warning(
                "otp_delivery_failed",
                phone=mask_phone(e164),
                channel=channel.value,
                error_type=delivery.error_type.value if delivery.error_type else None,
            )
            return failure_result(
                ServiceType.OTP,
                f"Failed to send OTP via {channel.value}. Please try again later.",
                error_code=delivery.error_code,
                error_type=delivery.error_type,
                retryable=delivery.retryable,
                circuit_breaker_open=delivery.metadata.circuit_breaker_open,
                retry_after=delivery.metadata.retry_after,
            ).with_attempts(delivery.retry_count, delivery.total_attempts)

        metrics.record_otp_event("sent")
        logger.info(
            "otp_sent",
            record_id=record.id,
            phone=mask_phone(e164),
            purpose=purpose.value,
            channel=channel.value,
            expires_in=self.config.expiry_seconds,
        )
        return success_result(
            ServiceType.OTP,
            f"OTP sent via {channel.value}. Valid for {self.expiry_minutes} minutes.",
            expires_in=self.config.expiry_seconds,
            max_attempts=self.config.max_attempts,
            message_sid=delivery.metadata.message_sid,
            development_mode=delivery.metadata.development_mode,
        ).with_attempts(delivery.retry_count, delivery.total_attempts)

    async def verify_otp(
        self,
        country_code: str,
        phone: str,
        code: str,
        purpose: Union[OTPPurpose, str],
    ) -> CommunicationResult:
        """
        Check a submitted code against the active record.

        Returns:
            Success once per issued code; failures carry ``expired`` or
            ``attempts``/``max_attempts``
        """
        try:
            purpose = OTPPurpose(purpose)
        except ValueError as e:
            return self._invalid(str(e))

        try:
            return await self._verify(country_code, phone, code or "", purpose)
        except Exception as e:
            logger.error(
                "otp_verify_error",
                phone=mask_phone(phone),
                purpose=purpose.value,
                error=str(e),
                exc_info=True,
            )
            error_type = categorize_error(None, str(e))
            return failure_result(
                ServiceType.OTP,
                "Failed to verify OTP. Please try again.",
                error_type=error_type,
                retryable=error_type != ErrorType.VALIDATION,
                attempts=0,
            )

    def _not_found(self) -> CommunicationResult:
        metrics.record_otp_event("not_found")
        return failure_result(
            ServiceType.OTP,
            "No active OTP found. Please request a new code.",
            error_type=ErrorType.VALIDATION,
            retryable=False,
            expired=True,
            attempts=0,
            max_attempts=self.config.max_attempts,
        )

    async def _verify(
        self,
        country_code: str,
        phone: str,
        code: str,
        purpose: OTPPurpose,
    ) -> CommunicationResult:
        country_code = f"+{digits_only(country_code)}"
        national = normalize_phone(phone, country_code)
        e164 = f"{country_code}{national}"
        now = self._clock()

        record = await self.store.get_active(national, country_code, purpose)
        if record is None:
            return self._not_found()

        if record.is_expired(now):
            await self.store.set_status(record.id, OTPStatus.EXPIRED)
            metrics.record_otp_event("expired")
            return failure_result(
                ServiceType.OTP,
                "OTP has expired. Please request a new code.",
                error_type=ErrorType.VALIDATION,
                retryable=False,
                expired=True,
                attempts=record.attempts,
                max_attempts=record.max_attempts,
            )

        attempts = await self.store.increment_attempts(record.id)
        if attempts is None:
            # Consumed by a concurrent verification
            return self._not_found()
        if attempts > record.max_attempts:
            await self.store.set_status(record.id, OTPStatus.EXHAUSTED)
            metrics.record_otp_event("exhausted")
            return failure_result(
                ServiceType.OTP,
                "Maximum verification attempts exceeded. Please request a new code.",
                error_type=ErrorType.VALIDATION,
                retryable=False,
                attempts=record.max_attempts,
                max_attempts=record.max_attempts,
            )

        if verify_otp_hash(
            code.strip(), self._secret, record.code_hash, phone=e164, purpose=purpose.value
        ):
            if not await self.store.set_status(record.id, OTPStatus.VERIFIED, verified_at=now):
                return self._not_found()
            metrics.record_otp_event("verified")
            logger.info("otp_verified", record_id=record.id, purpose=purpose.value)
            return success_result(
                ServiceType.OTP,
                "OTP verified successfully!",
                attempts=attempts,
                max_attempts=record.max_attempts,
            )

        logger.warning(
            "otp_invalid_attempt",
            record_id=record.id,
            attempts=attempts,
            max_attempts=record.max_attempts,
        )

        if attempts >= record.max_attempts:
            await self.store.set_status(record.id, OTPStatus.EXHAUSTED)
            metrics.record_otp_event("exhausted")
            return failure_result(
                ServiceType.OTP,
                "Invalid OTP. Maximum attempts exceeded. Please request a new code.",
                error_type=ErrorType.VALIDATION,
                retryable=False,
                attempts=attempts,
                max_attempts=record.max_attempts,
            )

        metrics.record_otp_event("invalid")
        remaining = record.max_attempts - attempts
        return failure_result(
            ServiceType.OTP,
            f"Invalid OTP. {remaining} attempt{'s' if remaining != 1 else ''} remaining.",
            error_type=ErrorType.VALIDATION,
            retryable=False,
            attempts=attempts,
            max_attempts=record.max_attempts,
        )

    async def cleanup_expired(self) -> int:
        """Delete records that expired more than ``retention_seconds`` ago."""
        cutoff = self._clock() - timedelta(seconds=self.config.retention_seconds)
        deleted = await self.store.cleanup(cutoff)
        logger.info("otp_cleanup", deleted=deleted)
        return deleted
