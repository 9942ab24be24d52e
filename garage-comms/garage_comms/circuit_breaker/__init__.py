"""
Garage Comms - Circuit Breaker
==============================
Async circuit breaker guarding each outbound delivery channel.

States:

1. CLOSED: Normal operation, deliveries reach the provider
2. OPEN: Provider is failing, deliveries short-circuit without a call
3. HALF-OPEN: Cooldown elapsed, one trial delivery is allowed

Usage:
    from garage_comms.circuit_breaker import BreakerRegistry

    breakers = BreakerRegistry()
    whatsapp = WhatsAppAdapter(settings, breaker=breakers.get("whatsapp"))
"""

from .models import (
    CircuitState,
    CircuitBreakerConfig,
    CircuitBreakerState,
)
from .breaker import CircuitBreaker
from .registry import BreakerRegistry

__all__ = [
    # Models
    "CircuitState",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    # Breaker
    "CircuitBreaker",
    # Registry
    "BreakerRegistry",
]
