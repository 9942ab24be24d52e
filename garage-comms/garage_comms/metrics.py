"""
Prometheus Metrics
===================
Delivery, OTP, breaker and upload validation metrics.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Custom registry so importing the library never touches the global one
COMMS_REGISTRY = CollectorRegistry()

COMMUNICATION_ATTEMPTS = Counter(
    name="communication_attempts_total",
    documentation="Delivery attempts by service and outcome",
    labelnames=["service", "outcome", "error_type"],
    registry=COMMS_REGISTRY,
)

CIRCUIT_BREAKER_STATE = Gauge(
    name="circuit_breaker_state",
    documentation="Circuit breaker state (0=closed, 1=half-open, 2=open)",
    labelnames=["service"],
    registry=COMMS_REGISTRY,
)

OTP_EVENTS = Counter(
    name="otp_events_total",
    documentation="OTP lifecycle events",
    labelnames=["event"],
    registry=COMMS_REGISTRY,
)

FILE_VALIDATIONS = Counter(
    name="file_validation_total",
    documentation="Upload validation outcomes",
    labelnames=["outcome", "security_issue"],
    registry=COMMS_REGISTRY,
)

_STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}


def _value(item) -> str:
    return getattr(item, "value", item) or "none"


def record_attempt(service, success: bool, error_type=None) -> None:
    """Count one delivery attempt."""
    COMMUNICATION_ATTEMPTS.labels(
        service=_value(service),
        outcome="success" if success else "failure",
        error_type=_value(error_type),
    ).inc()


def record_breaker_state(service: str, state) -> None:
    """Publish the current state of a channel breaker."""
    CIRCUIT_BREAKER_STATE.labels(service=service).set(_STATE_VALUES[_value(state)])


def record_otp_event(event: str) -> None:
    OTP_EVENTS.labels(event=event).inc()


def record_file_validation(is_valid: bool, security_issue=None) -> None:
    FILE_VALIDATIONS.labels(
        outcome="accepted" if is_valid else "rejected",
        security_issue=_value(security_issue),
    ).inc()


def get_metrics_text() -> bytes:
    """Render the registry in Prometheus exposition format."""
    return generate_latest(COMMS_REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST
