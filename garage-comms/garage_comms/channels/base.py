"""
Base Channel Adapter
====================
Common send path for every delivery channel.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

import httpx
import structlog

from garage_comms import metrics
from garage_comms.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from garage_comms.communication import (
    CommunicationResult,
    ErrorType,
    ServiceType,
    classify_exception,
    failure_result,
)
from garage_comms.log import mask_email, mask_phone
from .models import OutboundMessage

logger = structlog.get_logger(__name__)


class BaseChannelAdapter(ABC):
    """
    Abstract base class for channel adapters.

    ``send`` performs exactly one provider call: it checks the channel's
    breaker, delegates to ``_deliver``, classifies failures and records
    the outcome on the breaker. Retries belong to the caller.
    """

    service: ServiceType
    provider: str = "base"

    def __init__(
        self,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            breaker: Channel breaker shared by all requests on this channel
            transport: Optional httpx transport (tests use httpx.MockTransport)
            timeout: Bound on every provider call, in seconds
        """
        self.breaker = breaker or CircuitBreaker(
            self.service.value, CircuitBreakerConfig()
        )
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def available(self) -> bool:
        """Whether the channel can deliver at all (credentials, sender)."""
        return True

    def _client_options(self) -> Dict[str, Any]:
        """Extra httpx.AsyncClient options (auth, headers, base_url)."""
        return {}

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazily created HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                **self._client_options(),
            )
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _mask(self, address: str) -> str:
        return mask_email(address) if "@" in address else mask_phone(address)

    def validate(self, message: OutboundMessage) -> Optional[CommunicationResult]:
        """Return a failure result if the message can never be delivered."""
        return None

    @abstractmethod
    async def _deliver(self, message: OutboundMessage) -> CommunicationResult:
        """Perform the provider call. Raise or return a failure result on error."""

    def circuit_status(self) -> Dict[str, Any]:
        return self.breaker.metrics

    async def send(self, message: OutboundMessage) -> CommunicationResult:
        """Deliver one message and report the outcome."""
        invalid = self.validate(message)
        if invalid is not None:
            logger.warning(
                "delivery_rejected",
                service=self.service.value,
                to=self._mask(message.to),
                reason=invalid.message,
            )
            metrics.record_attempt(self.service, False, invalid.error_type)
            return invalid

        if not await self.breaker.allow_request():
            retry_after = math.ceil(self.breaker.retry_after())
            logger.warning(
                "delivery_short_circuited",
                service=self.service.value,
                retry_after=retry_after,
            )
            metrics.record_attempt(self.service, False, ErrorType.SERVICE_UNAVAILABLE)
            return failure_result(
                self.service,
                f"{self.service.value.title()} service temporarily unavailable. "
                "Please try again later.",
                error_type=ErrorType.SERVICE_UNAVAILABLE,
                retryable=True,
                circuit_breaker_open=True,
                retry_after=retry_after,
            )

        try:
            result = await self._deliver(message)
        except Exception as e:
            error_type, error_code = classify_exception(e, self.provider)
            logger.error(
                "delivery_failed",
                service=self.service.value,
                provider=self.provider,
                to=self._mask(message.to),
                error_type=error_type.value,
                error_code=error_code,
                error=str(e),
            )
            result = failure_result(
                self.service,
                f"Failed to send {self.service.value} message: {getattr(e, 'message', None) or e}",
                error_code=error_code,
                error_type=error_type,
                provider=self.provider,
                status_code=getattr(e, "status_code", None),
            )

        if result.success:
            await self.breaker.record_success()
        else:
            await self.breaker.record_failure(result.error_type)

        metrics.record_attempt(self.service, result.success, result.error_type)
        return result
