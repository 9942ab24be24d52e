"""Shared fixtures for the garage-comms test suite."""

from datetime import datetime, timedelta, timezone

import pytest


class ManualClock:
    """Monotonic-style clock advanced by hand."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualUTCClock:
    """Aware UTC datetime clock advanced by hand."""

    def __init__(self):
        self.now = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def utc_clock():
    return ManualUTCClock()


@pytest.fixture
def recording_adapter():
    """
    Adapter class that records messages instead of calling a provider.

    ``outcomes`` is consumed one per send: a CommunicationResult is
    returned, an exception is raised. Once empty, sends succeed.
    """
    from garage_comms.channels import BaseChannelAdapter
    from garage_comms.communication import ServiceType, success_result

    class RecordingAdapter(BaseChannelAdapter):
        provider = "twilio"

        def __init__(self, service=ServiceType.WHATSAPP, outcomes=None, breaker=None, available=True):
            self.service = service
            super().__init__(breaker=breaker)
            self.sent = []
            self.outcomes = list(outcomes or [])
            self._available = available

        @property
        def available(self):
            return self._available

        async def _deliver(self, message):
            self.sent.append(message)
            if self.outcomes:
                outcome = self.outcomes.pop(0)
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome
            return success_result(self.service, "delivered", message_sid=f"SM{len(self.sent)}")

    return RecordingAdapter
