"""
SMS Adapter
===========
Plain SMS delivery through Twilio, used as a WhatsApp fallback.
"""

from typing import Optional

from garage_comms.communication import (
    CommunicationResult,
    ErrorType,
    ServiceType,
    failure_result,
)
from garage_comms.phone import validate_e164
from .models import OutboundMessage
from .twilio import TwilioChannelAdapter


class SMSAdapter(TwilioChannelAdapter):
    """Sends SMS to an E.164 number from ``TWILIO_SMS_NUMBER``."""

    service = ServiceType.SMS

    @property
    def available(self) -> bool:
        return self.development_mode or bool(self.settings.sms_from)

    def _sender(self) -> str:
        return self.settings.sms_from

    def validate(self, message: OutboundMessage) -> Optional[CommunicationResult]:
        if not self.available:
            return failure_result(
                self.service,
                "SMS sender number is not configured",
                error_type=ErrorType.SERVICE_UNAVAILABLE,
                retryable=False,
            )
        if not validate_e164(message.to):
            return failure_result(
                self.service,
                "Invalid phone number format",
                error_type=ErrorType.VALIDATION,
                retryable=False,
            )
        return None
