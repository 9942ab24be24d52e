"""
Circuit Breaker Core
====================
Per-channel circuit breaker shared by every request on that channel.
"""

import asyncio
import time
from typing import Optional, Dict, Any, Callable

import structlog

from garage_comms.communication.models import ErrorType
from garage_comms import metrics
from .models import CircuitState, CircuitBreakerConfig, CircuitBreakerState

logger = structlog.get_logger(__name__)


class CircuitBreaker:
    """
    Async-compatible circuit breaker.

    The breaker is keyed by channel, not by recipient: failures for one
    recipient count against every delivery on the same channel.

    Example:
        breaker = CircuitBreaker("whatsapp")

        if not await breaker.allow_request():
            return short_circuit_result(breaker.retry_after())
        ...
        await breaker.record_failure(ErrorType.SERVICE_UNAVAILABLE)
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitBreakerState(last_state_change=clock())
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state.state

    @property
    def failure_count(self) -> int:
        return self._state.failure_count

    @property
    def metrics(self) -> Dict[str, Any]:
        """Get circuit breaker metrics."""
        return {
            "name": self.name,
            "state": self._state.state.value,
            "failure_count": self._state.failure_count,
            "threshold": self.config.fail_threshold,
            "recovery_seconds": self.config.timeout,
            "total_calls": self._state.total_calls,
            "total_failures": self._state.total_failures,
            "total_successes": self._state.total_successes,
            "total_rejections": self._state.total_rejections,
            "last_failure": self._state.last_failure_time,
            "retry_after": self.retry_after(),
        }

    def retry_after(self) -> float:
        """Seconds until an open circuit admits a trial request."""
        if self._state.state != CircuitState.OPEN:
            return 0.0
        elapsed = self._clock() - self._state.last_state_change
        return max(0.0, self.config.timeout - elapsed)

    def _transition(self, state: CircuitState) -> None:
        self._state.state = state
        self._state.last_state_change = self._clock()
        metrics.record_breaker_state(self.name, state)

    async def allow_request(self) -> bool:
        """Check and possibly transition state. Returns True if allowed."""
        async with self._lock:
            if self._state.state == CircuitState.CLOSED:
                return True

            if self._state.state == CircuitState.OPEN:
                if self._clock() - self._state.last_state_change >= self.config.timeout:
                    self._transition(CircuitState.HALF_OPEN)
                    self._state.half_open_calls = 1
                    self._state.success_count = 0
                    logger.info("circuit_half_open", service=self.name)
                    return True
                self._state.total_rejections += 1
                return False

            if self._state.half_open_calls < self.config.half_open_max_calls:
                self._state.half_open_calls += 1
                return True
            self._state.total_rejections += 1
            return False

    async def record_success(self) -> None:
        """Record a successful call."""
        async with self._lock:
            self._state.total_successes += 1
            self._state.total_calls += 1

            if self._state.state == CircuitState.HALF_OPEN:
                self._state.success_count += 1
                if self._state.success_count >= self.config.success_threshold:
                    self._state.failure_count = 0
                    self._transition(CircuitState.CLOSED)
                    logger.info("circuit_closed", service=self.name)

            elif self._state.state == CircuitState.CLOSED:
                self._state.failure_count = 0

    async def record_failure(self, error_type: Optional[ErrorType] = None) -> None:
        """Record a failed call."""
        if error_type is not None and error_type in self.config.excluded_error_types:
            async with self._lock:
                # The trial told us nothing about the provider; free its slot
                if self._state.state == CircuitState.HALF_OPEN and self._state.half_open_calls > 0:
                    self._state.half_open_calls -= 1
            return

        async with self._lock:
            self._state.total_failures += 1
            self._state.total_calls += 1
            self._state.failure_count += 1
            self._state.last_failure_time = self._clock()

            if self._state.state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
                logger.warning(
                    "circuit_reopened",
                    service=self.name,
                    error_type=error_type.value if error_type else None,
                )

            elif self._state.state == CircuitState.CLOSED:
                if self._state.failure_count >= self.config.fail_threshold:
                    self._transition(CircuitState.OPEN)
                    logger.warning(
                        "circuit_opened",
                        service=self.name,
                        failures=self._state.failure_count,
                        recovery_seconds=self.config.timeout,
                    )

    async def reset(self) -> None:
        """Force the breaker closed and clear counters."""
        async with self._lock:
            self._state = CircuitBreakerState(last_state_change=self._clock())
            metrics.record_breaker_state(self.name, CircuitState.CLOSED)
        logger.info("circuit_reset", service=self.name)
