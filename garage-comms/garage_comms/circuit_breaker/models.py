"""
Circuit Breaker Models
======================
Data models and enums for the per-channel circuit breaker.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from garage_comms.communication.models import ErrorType


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for a circuit breaker."""
    fail_threshold: int = 5           # Consecutive failures before opening
    success_threshold: int = 1        # Successes to close from half-open
    timeout: float = 300.0            # Seconds to stay open before half-open
    half_open_max_calls: int = 1      # Trial requests allowed while half-open
    # Caller mistakes say nothing about provider health
    excluded_error_types: Tuple[ErrorType, ...] = (
        ErrorType.VALIDATION,
        ErrorType.POLICY_VIOLATION,
    )

    @classmethod
    def from_minutes(cls, fail_threshold: int, recovery_minutes: float) -> "CircuitBreakerConfig":
        return cls(fail_threshold=fail_threshold, timeout=recovery_minutes * 60)


@dataclass
class CircuitBreakerState:
    """Runtime state of a circuit breaker."""
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    last_failure_time: float = 0
    last_state_change: float = 0
    half_open_calls: int = 0

    # Metrics
    total_calls: int = 0
    total_failures: int = 0
    total_successes: int = 0
    total_rejections: int = 0
