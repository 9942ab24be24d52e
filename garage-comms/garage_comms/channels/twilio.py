"""
Twilio Messages API
===================
Shared delivery path for the WhatsApp and SMS adapters.
"""

import time
from abc import abstractmethod
from typing import Optional, Dict, Any

import httpx
import structlog

from garage_comms.circuit_breaker import CircuitBreaker
from garage_comms.communication import CommunicationResult, success_result
from garage_comms.config import TwilioSettings
from garage_comms.exceptions import ConfigurationError, ProviderError
from .base import BaseChannelAdapter
from .models import OutboundMessage

logger = structlog.get_logger(__name__)


class TwilioChannelAdapter(BaseChannelAdapter):
    """
    Posts to ``/Accounts/{sid}/Messages.json``.

    Without credentials outside production the adapter runs in development
    mode: the message is logged and a ``mock_<timestamp>`` SID is returned.
    """

    provider = "twilio"

    def __init__(
        self,
        settings: Optional[TwilioSettings] = None,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        production: bool = False,
    ):
        self.settings = settings or TwilioSettings()
        if production and not self.settings.configured:
            raise ConfigurationError(
                f"Twilio credentials are required for {self.service.value} in production"
            )
        super().__init__(breaker=breaker, transport=transport, timeout=self.settings.timeout)

    @property
    def development_mode(self) -> bool:
        return not self.settings.configured

    @property
    def messages_url(self) -> str:
        return f"{self.settings.api_base_url}/Accounts/{self.settings.account_sid}/Messages.json"

    def _client_options(self) -> Dict[str, Any]:
        return {"auth": httpx.BasicAuth(self.settings.account_sid, self.settings.auth_token)}

    @abstractmethod
    def _sender(self) -> str:
        """Twilio ``From`` value for this channel."""

    def _recipient(self, to: str) -> str:
        return to

    async def _deliver(self, message: OutboundMessage) -> CommunicationResult:
        to = self._recipient(message.to)

        if self.development_mode:
            sid = f"mock_{int(time.time() * 1000)}"
            logger.info(
                "development_mode_delivery",
                service=self.service.value,
                to=self._mask(to),
                message_type=message.message_type.value if message.message_type else None,
                body_length=len(message.body),
                message_sid=sid,
            )
            return success_result(
                self.service,
                f"{self.service.value.title()} message logged (development mode)",
                message_sid=sid,
                development_mode=True,
            )

        response = await self.client.post(
            self.messages_url,
            data={"From": self._sender(), "To": to, "Body": message.body},
        )

        if response.status_code in (200, 201):
            data = response.json()
            logger.info(
                "message_sent",
                service=self.service.value,
                to=self._mask(to),
                message_sid=data.get("sid"),
                status=data.get("status"),
            )
            return success_result(
                self.service,
                f"{self.service.value.title()} message sent successfully",
                message_sid=data.get("sid"),
            )

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}

        raise ProviderError(
            error_data.get("message") or f"HTTP {response.status_code}",
            provider=self.provider,
            code=str(error_data.get("code") or response.status_code),
            status_code=response.status_code,
        )
