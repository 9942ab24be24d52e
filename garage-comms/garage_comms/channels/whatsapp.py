"""
WhatsApp Adapter
================
WhatsApp delivery through Twilio.
"""

from typing import Optional

from garage_comms.communication import (
    CommunicationResult,
    ErrorType,
    ServiceType,
    failure_result,
)
from garage_comms.exceptions import InvalidPhoneNumber
from garage_comms.phone import format_whatsapp_number, validate_e164
from .models import MessageType, OutboundMessage
from .twilio import TwilioChannelAdapter

WHATSAPP_PREFIX = "whatsapp:"


class WhatsAppAdapter(TwilioChannelAdapter):
    """
    Sends WhatsApp messages.

    ``OutboundMessage.to`` is an E.164 number, with or without the
    ``whatsapp:`` prefix.
    """

    service = ServiceType.WHATSAPP

    def _sender(self) -> str:
        sender = self.settings.whatsapp_from
        return sender if sender.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{sender}"

    def _recipient(self, to: str) -> str:
        return to if to.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{to}"

    def validate(self, message: OutboundMessage) -> Optional[CommunicationResult]:
        number = message.to[len(WHATSAPP_PREFIX):] if message.to.startswith(WHATSAPP_PREFIX) else message.to
        if not validate_e164(number):
            return failure_result(
                self.service,
                "Invalid phone number format",
                error_type=ErrorType.VALIDATION,
                retryable=False,
            )
        if not message.body:
            return failure_result(
                self.service,
                "Message body is required",
                error_type=ErrorType.VALIDATION,
                retryable=False,
            )
        return None

    async def send_to(
        self,
        phone: str,
        country_code: str,
        body: str,
        message_type: Optional[MessageType] = None,
    ) -> CommunicationResult:
        """Format a national number and send."""
        try:
            to = format_whatsapp_number(phone, country_code)
        except InvalidPhoneNumber as e:
            return failure_result(
                self.service, str(e), error_type=ErrorType.VALIDATION, retryable=False
            )
        return await self.send(OutboundMessage(to=to, body=body, message_type=message_type))
