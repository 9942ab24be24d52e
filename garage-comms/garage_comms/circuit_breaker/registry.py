"""
Circuit Breaker Registry
========================
Explicit registry for the breakers of one application instance.
"""

import time
from typing import Optional, Dict, Any, Callable

import structlog

from .models import CircuitBreakerConfig
from .breaker import CircuitBreaker

logger = structlog.get_logger(__name__)


class BreakerRegistry:
    """
    Holds one breaker per channel.

    Built once at application startup and passed to the channel adapters,
    so tests can create a fresh registry instead of resetting globals.
    """

    def __init__(
        self,
        default_config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_config = default_config
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(
        self,
        service_name: str,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> CircuitBreaker:
        """
        Get or create a circuit breaker for a channel.

        Args:
            service_name: Channel name ("whatsapp", "email", "sms")
            config: Optional configuration (only used if creating new breaker)
        """
        if service_name not in self._breakers:
            self._breakers[service_name] = CircuitBreaker(
                name=service_name,
                config=config or self.default_config,
                clock=self._clock,
            )
        return self._breakers[service_name]

    def __contains__(self, service_name: str) -> bool:
        return service_name in self._breakers

    def __iter__(self):
        return iter(self._breakers.values())

    def all_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Get metrics for all registered circuit breakers."""
        return {name: breaker.metrics for name, breaker in self._breakers.items()}

    async def reset(self, service_name: str) -> bool:
        """Reset a specific circuit breaker to closed state."""
        breaker = self._breakers.get(service_name)
        if breaker is None:
            return False
        await breaker.reset()
        return True

    async def reset_all(self) -> None:
        """Reset all circuit breakers."""
        for breaker in self._breakers.values():
            await breaker.reset()
        logger.info("all_circuits_reset", count=len(self._breakers))
