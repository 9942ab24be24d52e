"""
Notification Dispatcher
=======================
Caller level delivery policy: retry with exponential backoff and
WhatsApp -> SMS -> email fallback, and preferred-channel routing between
WhatsApp and email.
"""

import asyncio
from dataclasses import replace
from typing import Optional, Callable, Awaitable, Tuple

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from garage_comms.circuit_breaker import BreakerRegistry, CircuitBreakerConfig
from garage_comms.communication import (
    CommunicationResult,
    ErrorType,
    ServiceType,
    failure_result,
)
from garage_comms.config import FallbackSettings, RetryConfig, Settings
from garage_comms.exceptions import InvalidPhoneNumber
from garage_comms.log import mask_phone
from garage_comms.phone import format_e164
from . import templates
from .base import BaseChannelAdapter
from .email import EmailAdapter
from .models import (
    AppointmentConfirmation,
    AuctionBidUpdate,
    BidNotification,
    BidStatusUpdate,
    MessageType,
    NotificationChannel,
    OutboundMessage,
    Recipient,
    ServiceProviderBooking,
    StatusUpdate,
)
from .sms import SMSAdapter
from .whatsapp import WhatsAppAdapter

logger = structlog.get_logger(__name__)


def _should_retry(result: CommunicationResult) -> bool:
    # An open circuit will not close within the backoff window
    return not result.success and bool(result.retryable) and not result.circuit_open


def _last_result(retry_state: RetryCallState) -> CommunicationResult:
    return retry_state.outcome.result()


def _log_retry(retry_state: RetryCallState) -> None:
    result = retry_state.outcome.result()
    logger.warning(
        "delivery_retry_scheduled",
        service=result.service.value,
        attempt=retry_state.attempt_number,
        delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
        error_type=result.error_type.value if result.error_type else None,
    )


class NotificationDispatcher:
    """
    Sends customer notifications over the configured channels.

    Example:
        dispatcher = NotificationDispatcher.from_settings(Settings(), BreakerRegistry())
        result = await dispatcher.send_welcome_message("9876543210", "+91", "Asha")
    """

    def __init__(
        self,
        whatsapp: WhatsAppAdapter,
        sms: Optional[SMSAdapter] = None,
        email: Optional[EmailAdapter] = None,
        whatsapp_retry: Optional[RetryConfig] = None,
        sms_retry: Optional[RetryConfig] = None,
        email_retry: Optional[RetryConfig] = None,
        fallback: Optional[FallbackSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.whatsapp = whatsapp
        self.sms = sms
        self.email = email
        self.retry_configs = {
            ServiceType.WHATSAPP: whatsapp_retry or RetryConfig(),
            ServiceType.SMS: sms_retry or RetryConfig(),
            ServiceType.EMAIL: email_retry or RetryConfig(),
        }
        self.fallback = fallback or FallbackSettings()
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        breakers: BreakerRegistry,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "NotificationDispatcher":
        """Build adapters and policy from environment settings."""
        whatsapp_breaker = breakers.get(
            "whatsapp",
            CircuitBreakerConfig.from_minutes(
                settings.whatsapp_breaker.fail_threshold,
                settings.whatsapp_breaker.recovery_minutes,
            ),
        )
        return cls(
            whatsapp=WhatsAppAdapter(
                settings.twilio,
                breaker=whatsapp_breaker,
                transport=transport,
                production=settings.production,
            ),
            sms=SMSAdapter(
                settings.twilio,
                breaker=breakers.get("sms"),
                transport=transport,
                production=settings.production,
            ),
            email=EmailAdapter(settings.sendgrid, breaker=breakers.get("email"), transport=transport),
            whatsapp_retry=settings.whatsapp_retry,
            sms_retry=settings.sms_retry,
            email_retry=settings.email_retry,
            fallback=settings.fallback,
        )

    async def aclose(self) -> None:
        for adapter in (self.whatsapp, self.sms, self.email):
            if adapter is not None:
                await adapter.aclose()

    async def deliver(
        self,
        adapter: BaseChannelAdapter,
        message: OutboundMessage,
        retry: Optional[RetryConfig] = None,
    ) -> CommunicationResult:
        """
        Send through one adapter, retrying retryable failures.

        Returns:
            The final attempt's result with retry_count/total_attempts set
        """
        config = retry or self.retry_configs.get(adapter.service, RetryConfig())
        attempts = 0

        async def attempt() -> CommunicationResult:
            nonlocal attempts
            attempts += 1
            return await adapter.send(message)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(config.max_retries + 1),
            wait=wait_exponential(
                multiplier=config.initial_delay,
                exp_base=config.backoff_multiplier,
                max=config.max_delay,
            ),
            retry=retry_if_result(_should_retry),
            before_sleep=_log_retry,
            retry_error_callback=_last_result,
            sleep=self._sleep,
        )
        result = await retrying(attempt)
        return result.with_attempts(retry_count=attempts - 1, total_attempts=attempts)

    async def send_whatsapp(
        self,
        phone: str,
        country_code: str,
        body: str,
        *,
        message_type: MessageType,
        fallback_email: Optional[str] = None,
        email_subject: Optional[str] = None,
        email_text: Optional[str] = None,
        email_html: Optional[str] = None,
    ) -> CommunicationResult:
        """
        Send a WhatsApp message, falling back to SMS then email on failure.

        Args:
            phone: National number
            country_code: Country code such as "+91"
            body: Message text
            message_type: Notification kind
            fallback_email: Address for the email fallback, if any
            email_subject/email_text/email_html: Email rendition of the
                message; without a subject, ``body`` is wrapped in the
                generic fallback email
        """
        try:
            e164: Optional[str] = format_e164(phone, country_code)
        except InvalidPhoneNumber as e:
            e164 = None
            primary = failure_result(
                ServiceType.WHATSAPP, str(e), error_type=ErrorType.VALIDATION, retryable=False
            )
        else:
            primary = await self.deliver(
                self.whatsapp,
                OutboundMessage(to=e164, body=body, message_type=message_type),
            )

        if primary.success:
            return primary

        logger.warning(
            "whatsapp_delivery_failed",
            to=mask_phone(e164 or phone),
            message_type=message_type.value,
            error_type=primary.error_type.value if primary.error_type else None,
            circuit_breaker_open=primary.circuit_open,
        )

        fallback_attempted = False

        if self.fallback.sms_enabled and self.sms is not None and self.sms.available and e164:
            fallback_attempted = True
            result = await self.deliver(
                self.sms, OutboundMessage(to=e164, body=body, message_type=message_type)
            )
            if result.success:
                logger.info("fallback_delivered", channel="sms", message_type=message_type.value)
                return result.with_metadata(fallback_used="sms", original_error=primary.message)

        if (
            self.fallback.email_enabled
            and self.email is not None
            and self.email.available
            and fallback_email
        ):
            fallback_attempted = True
            if email_subject is None:
                email_subject, email_html = templates.render_fallback_email(message_type.label, body)
            result = await self.deliver(
                self.email,
                OutboundMessage(
                    to=fallback_email,
                    body=email_text or body,
                    subject=email_subject,
                    html=email_html,
                    message_type=message_type,
                ),
            )
            if result.success:
                logger.info("fallback_delivered", channel="email", message_type=message_type.value)
                return result.with_metadata(fallback_used="email", original_error=primary.message)

        logger.error(
            "notification_undeliverable",
            to=mask_phone(e164 or phone),
            message_type=message_type.value,
            fallback_attempted=fallback_attempted,
        )
        return primary.with_metadata(final_failure=True, fallback_attempted=fallback_attempted)

    async def send_appointment_confirmation(
        self,
        phone: str,
        country_code: str,
        data: AppointmentConfirmation,
        fallback_email: Optional[str] = None,
    ) -> CommunicationResult:
        subject, text, html = templates.render_appointment_confirmation_email(data)
        return await self.send_whatsapp(
            phone,
            country_code,
            templates.render_appointment_confirmation(data),
            message_type=MessageType.APPOINTMENT_CONFIRMATION,
            fallback_email=fallback_email,
            email_subject=subject,
            email_text=text,
            email_html=html,
        )

    async def send_status_update(
        self,
        phone: str,
        country_code: str,
        data: StatusUpdate,
        fallback_email: Optional[str] = None,
    ) -> CommunicationResult:
        subject, text, html = templates.render_status_update_email(data)
        return await self.send_whatsapp(
            phone,
            country_code,
            templates.render_status_update(data),
            message_type=MessageType.STATUS_UPDATE,
            fallback_email=fallback_email,
            email_subject=subject,
            email_text=text,
            email_html=html,
        )

    async def send_bid_notification(
        self,
        phone: str,
        country_code: str,
        data: BidNotification,
        fallback_email: Optional[str] = None,
    ) -> CommunicationResult:
        return await self.send_whatsapp(
            phone,
            country_code,
            templates.render_bid_notification(data),
            message_type=MessageType.BID_NOTIFICATION,
            fallback_email=fallback_email,
        )

    async def send_welcome_message(
        self,
        phone: str,
        country_code: str,
        customer_name: str,
        fallback_email: Optional[str] = None,
    ) -> CommunicationResult:
        return await self.send_whatsapp(
            phone,
            country_code,
            templates.render_welcome_message(customer_name),
            message_type=MessageType.WELCOME,
            fallback_email=fallback_email,
        )

    async def send_service_provider_booking(
        self,
        phone: str,
        country_code: str,
        data: ServiceProviderBooking,
        fallback_email: Optional[str] = None,
    ) -> CommunicationResult:
        return await self.send_whatsapp(
            phone,
            country_code,
            templates.render_service_provider_booking(data),
            message_type=MessageType.SERVICE_PROVIDER_BOOKING,
            fallback_email=fallback_email,
        )

    async def send_email(
        self,
        to: str,
        parts: Tuple[str, str, str],
        message_type: MessageType,
    ) -> CommunicationResult:
        """Email only delivery of a rendered ``(subject, text, html)`` message."""
        if self.email is None:
            return failure_result(
                ServiceType.EMAIL,
                "Email service not configured",
                error_type=ErrorType.SERVICE_UNAVAILABLE,
                retryable=False,
            )
        subject, text, html = parts
        return await self.deliver(
            self.email,
            OutboundMessage(to=to, body=text, subject=subject, html=html, message_type=message_type),
        )

    async def send_appointment_reminder(
        self, to: str, data: AppointmentConfirmation
    ) -> CommunicationResult:
        return await self.send_email(
            to,
            templates.render_appointment_reminder_email(data),
            MessageType.APPOINTMENT_REMINDER,
        )

    async def send_auction_bid_update(self, to: str, data: AuctionBidUpdate) -> CommunicationResult:
        return await self.send_email(
            to, templates.render_auction_bid_email(data), MessageType.AUCTION_BID_UPDATE
        )

    # Preferred-channel routing

    async def _send_via(
        self,
        channel: NotificationChannel,
        recipient: Recipient,
        body: str,
        message_type: MessageType,
        email_parts: Tuple[str, str, str],
    ) -> CommunicationResult:
        if channel == NotificationChannel.WHATSAPP:
            if not recipient.phone:
                return failure_result(
                    ServiceType.WHATSAPP,
                    "Recipient missing phone number",
                    error_type=ErrorType.VALIDATION,
                    retryable=False,
                )
            try:
                to = format_e164(recipient.phone, recipient.country_code)
            except InvalidPhoneNumber as e:
                return failure_result(
                    ServiceType.WHATSAPP, str(e), error_type=ErrorType.VALIDATION, retryable=False
                )
            return await self.deliver(
                self.whatsapp, OutboundMessage(to=to, body=body, message_type=message_type)
            )

        if not recipient.email:
            return failure_result(
                ServiceType.EMAIL,
                "Recipient missing email address",
                error_type=ErrorType.VALIDATION,
                retryable=False,
            )
        return await self.send_email(recipient.email, email_parts, message_type)

    async def send_preferred(
        self,
        recipient: Recipient,
        body: str,
        email_parts: Tuple[str, str, str],
        message_type: MessageType,
    ) -> CommunicationResult:
        """
        Send on the recipient's preferred channel, then on the other one.

        WhatsApp gets ``body``; email gets ``email_parts`` as
        ``(subject, text, html)``. SMS is not part of this routing.

        Returns:
            The delivering channel's result with ``channel_used`` (and
            ``fallback_used``/``original_error`` when the alternate channel
            delivered), or the alternate channel's failure with
            ``final_failure``
        """
        preferred = recipient.preferred_channel
        alternate = preferred.alternate

        first = await self._send_via(preferred, recipient, body, message_type, email_parts)
        if first.success:
            return first.with_metadata(channel_used=preferred.value)

        logger.warning(
            "preferred_channel_failed",
            channel=preferred.value,
            alternate=alternate.value,
            message_type=message_type.value,
            error_type=first.error_type.value if first.error_type else None,
        )

        second = await self._send_via(alternate, recipient, body, message_type, email_parts)
        if second.success:
            logger.info("fallback_delivered", channel=alternate.value, message_type=message_type.value)
            return second.with_metadata(
                channel_used=alternate.value,
                fallback_used=alternate.value,
                original_error=first.message,
            )

        logger.error(
            "notification_undeliverable",
            preferred=preferred.value,
            message_type=message_type.value,
        )
        return replace(
            second,
            message=f"Failed to send via both {preferred.value} and {alternate.value}",
        ).with_metadata(
            original_error=first.message,
            final_failure=True,
            fallback_attempted=True,
        )

    async def notify_appointment_confirmation(
        self, recipient: Recipient, data: AppointmentConfirmation
    ) -> CommunicationResult:
        return await self.send_preferred(
            recipient,
            templates.render_appointment_confirmation(data),
            templates.render_appointment_confirmation_email(data),
            MessageType.APPOINTMENT_CONFIRMATION,
        )

    async def notify_status_update(self, recipient: Recipient, data: StatusUpdate) -> CommunicationResult:
        return await self.send_preferred(
            recipient,
            templates.render_status_update(data),
            templates.render_status_update_email(data),
            MessageType.STATUS_UPDATE,
        )

    async def send_promotional_message(
        self,
        recipient: Recipient,
        message: str,
        subject: Optional[str] = None,
    ) -> CommunicationResult:
        return await self.send_preferred(
            recipient,
            message,
            templates.render_promotional_email(recipient.name, message, subject),
            MessageType.PROMOTIONAL,
        )

    async def send_bid_status_update(
        self, recipient: Recipient, data: BidStatusUpdate
    ) -> CommunicationResult:
        return await self.send_preferred(
            recipient,
            templates.render_bid_status_message(data),
            templates.render_bid_status_email(data),
            MessageType.BID_STATUS,
        )
