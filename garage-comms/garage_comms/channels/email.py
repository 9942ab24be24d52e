"""
Email Adapter
=============
Email delivery through the SendGrid v3 Mail Send API.
"""

import re
from typing import Optional, Dict, Any, List

import httpx
import structlog

from garage_comms.circuit_breaker import CircuitBreaker
from garage_comms.communication import (
    CommunicationResult,
    ErrorType,
    ServiceType,
    failure_result,
    success_result,
)
from garage_comms.config import SendGridSettings
from garage_comms.exceptions import ProviderError
from .base import BaseChannelAdapter
from .models import OutboundMessage

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Only these fields of a SendGrid error body are safe to log
SAFE_ERROR_FIELDS = ("message", "field", "help", "error_id")


def sanitize_sendgrid_error(body: Any) -> Dict[str, Any]:
    """Strip a SendGrid error response down to non-PII fields."""
    if not isinstance(body, dict):
        return {"error_id": "unknown"}

    sanitized: Dict[str, Any] = {}
    errors = body.get("errors")
    if isinstance(errors, list):
        sanitized["errors"] = [
            {k: e[k] for k in SAFE_ERROR_FIELDS if isinstance(e, dict) and k in e}
            for e in errors
        ]
    for key in SAFE_ERROR_FIELDS:
        if key in body:
            sanitized[key] = body[key]
    if "error_count" in body:
        sanitized["error_count"] = body["error_count"]
    return sanitized


def is_valid_email(address: Optional[str]) -> bool:
    return bool(address and EMAIL_PATTERN.match(address))


class EmailAdapter(BaseChannelAdapter):
    """
    Sends email via SendGrid.

    ``OutboundMessage.body`` is the plain text part; ``html`` is optional.
    """

    service = ServiceType.EMAIL
    provider = "sendgrid"

    def __init__(
        self,
        settings: Optional[SendGridSettings] = None,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or SendGridSettings()
        super().__init__(breaker=breaker, transport=transport, timeout=self.settings.timeout)

    @property
    def available(self) -> bool:
        return self.settings.configured

    def _client_options(self) -> Dict[str, Any]:
        return {
            "base_url": self.settings.api_base_url,
            "headers": {
                "Authorization": f"Bearer {self.settings.api_key}",
                "Content-Type": "application/json",
            },
        }

    def validate(self, message: OutboundMessage) -> Optional[CommunicationResult]:
        if not self.available:
            return failure_result(
                self.service,
                "Email service not configured",
                error_type=ErrorType.SERVICE_UNAVAILABLE,
                retryable=False,
            )
        if not message.to or not message.subject or not self.settings.from_email:
            return failure_result(
                self.service,
                "Missing required email parameters",
                error_type=ErrorType.VALIDATION,
                retryable=False,
            )
        if not is_valid_email(message.to):
            return failure_result(
                self.service,
                "Invalid recipient email format",
                error_type=ErrorType.VALIDATION,
                retryable=False,
            )
        if not is_valid_email(self.settings.from_email):
            return failure_result(
                self.service,
                "Invalid sender email format",
                error_type=ErrorType.VALIDATION,
                retryable=False,
            )
        return None

    def _payload(self, message: OutboundMessage) -> Dict[str, Any]:
        content: List[Dict[str, str]] = [{"type": "text/plain", "value": message.body}]
        if message.html:
            content.append({"type": "text/html", "value": message.html})
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self.settings.from_email},
            "subject": message.subject,
            "content": content,
        }

    async def _deliver(self, message: OutboundMessage) -> CommunicationResult:
        response = await self.client.post("/v3/mail/send", json=self._payload(message))

        if response.status_code in (200, 202):
            email_id = response.headers.get("x-message-id")
            logger.info(
                "email_sent",
                to=self._mask(message.to),
                subject=message.subject,
                email_id=email_id,
            )
            return success_result(
                self.service,
                "Email sent successfully",
                email_id=email_id,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        sanitized = sanitize_sendgrid_error(body)
        logger.error(
            "sendgrid_error_response",
            status_code=response.status_code,
            response=sanitized,
        )

        errors = sanitized.get("errors") or [{}]
        raise ProviderError(
            errors[0].get("message") or sanitized.get("message") or f"HTTP {response.status_code}",
            provider=self.provider,
            code=str(response.status_code),
            status_code=response.status_code,
        )

    async def send_email(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> CommunicationResult:
        return await self.send(OutboundMessage(to=to, body=text, subject=subject, html=html))
