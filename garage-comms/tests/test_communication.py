"""
Tests for error classification and the communication result envelope.
"""

import pytest


class TestCategorizeError:
    """Tests for the error classifier."""

    def test_provider_table_wins(self):
        """Mapped provider codes use the explicit table."""
        from garage_comms.communication import categorize_error, ErrorType

        assert categorize_error("21211", "timeout", provider="twilio") == ErrorType.VALIDATION
        assert categorize_error("21610", None, provider="twilio") == ErrorType.POLICY_VIOLATION
        assert categorize_error("403", None, provider="sendgrid") == ErrorType.POLICY_VIOLATION
        assert categorize_error("502", None, provider="sendgrid") == ErrorType.SERVICE_UNAVAILABLE

    def test_unmapped_code_falls_back_to_heuristics(self):
        from garage_comms.communication import categorize_error, ErrorType

        assert categorize_error("429", None, provider="twilio") == ErrorType.RATE_LIMIT
        assert categorize_error("400", None) == ErrorType.VALIDATION
        assert categorize_error("21999", None) == ErrorType.VALIDATION
        assert categorize_error("63032", None) == ErrorType.POLICY_VIOLATION
        assert categorize_error("503", None) == ErrorType.SERVICE_UNAVAILABLE

    def test_authentication_precedes_timeout(self):
        """A message matching several rules takes the earliest rule."""
        from garage_comms.communication import categorize_error, ErrorType

        result = categorize_error(None, "Unauthorized: upstream timeout")
        assert result == ErrorType.AUTHENTICATION

    def test_rate_limit_precedes_validation(self):
        from garage_comms.communication import categorize_error, ErrorType

        result = categorize_error(None, "Too many invalid requests")
        assert result == ErrorType.RATE_LIMIT

    def test_message_heuristics(self):
        from garage_comms.communication import categorize_error, ErrorType

        assert categorize_error(None, "Content policy breach") == ErrorType.POLICY_VIOLATION
        assert categorize_error(None, "Service Unavailable") == ErrorType.SERVICE_UNAVAILABLE
        assert categorize_error(None, "DNS lookup failed") == ErrorType.NETWORK
        assert categorize_error(None, "Connection reset by peer") == ErrorType.NETWORK

    def test_nothing_to_classify_is_unknown(self):
        from garage_comms.communication import categorize_error, ErrorType

        assert categorize_error() == ErrorType.UNKNOWN
        assert categorize_error("99999", "something odd") == ErrorType.UNKNOWN

    def test_integer_codes_accepted(self):
        from garage_comms.communication import categorize_error, ErrorType

        assert categorize_error(401) == ErrorType.AUTHENTICATION


class TestRetryability:
    """Tests for the retry policy."""

    @pytest.mark.parametrize("error_type", ["validation", "authentication", "policy_violation"])
    def test_permanent_types_never_retryable(self, error_type):
        from garage_comms.communication import is_error_retryable, ErrorType, NON_RETRYABLE_PROVIDER_CODES

        for code in [None, "500", "99999", *NON_RETRYABLE_PROVIDER_CODES]:
            assert is_error_retryable(ErrorType(error_type), code) is False

    def test_transient_types_retryable(self):
        from garage_comms.communication import is_error_retryable, ErrorType

        assert is_error_retryable(ErrorType.RATE_LIMIT) is True
        assert is_error_retryable(ErrorType.SERVICE_UNAVAILABLE, "503") is True
        assert is_error_retryable(ErrorType.NETWORK) is True

    def test_unknown_with_denylisted_code(self):
        from garage_comms.communication import is_error_retryable, ErrorType

        assert is_error_retryable(ErrorType.UNKNOWN, "30454") is False
        assert is_error_retryable(ErrorType.UNKNOWN, "99999") is True
        assert is_error_retryable(ErrorType.UNKNOWN) is True


class TestClassifyException:
    """Tests for exception classification."""

    def test_timeout(self):
        import httpx
        from garage_comms.communication import classify_exception, ErrorType

        assert classify_exception(httpx.ReadTimeout("slow")) == (ErrorType.SERVICE_UNAVAILABLE, None)

    def test_transport_error(self):
        import httpx
        from garage_comms.communication import classify_exception, ErrorType

        assert classify_exception(httpx.ConnectError("refused")) == (ErrorType.NETWORK, None)

    def test_provider_error(self):
        from garage_comms.communication import classify_exception, ErrorType
        from garage_comms.exceptions import ProviderError

        exc = ProviderError("Invalid 'To' number", provider="twilio", code="21211", status_code=400)
        assert classify_exception(exc) == (ErrorType.VALIDATION, "21211")

    def test_provider_error_status_only(self):
        from garage_comms.communication import classify_exception, ErrorType
        from garage_comms.exceptions import ProviderError

        exc = ProviderError("Bad gateway", provider="sendgrid", status_code=502)
        assert classify_exception(exc) == (ErrorType.SERVICE_UNAVAILABLE, "502")


class TestCommunicationResult:
    """Tests for result creation and serialization."""

    def test_failure_derives_type_and_retryability(self):
        from garage_comms.communication import create_communication_result, ServiceType, ErrorType

        result = create_communication_result(ServiceType.WHATSAPP, False, "Rate limit exceeded")

        assert result.error_type == ErrorType.RATE_LIMIT
        assert result.retryable is True

    def test_failure_without_message_gets_default(self):
        from garage_comms.communication import create_communication_result, ServiceType, ErrorType

        result = create_communication_result(ServiceType.EMAIL, False, "")

        assert result.message == "Communication failed"
        assert result.error_type == ErrorType.UNKNOWN

    def test_explicit_values_are_kept(self):
        from garage_comms.communication import failure_result, ServiceType, ErrorType

        result = failure_result(
            ServiceType.SMS, "Invalid number", error_type=ErrorType.NETWORK, retryable=False
        )

        assert result.error_type == ErrorType.NETWORK
        assert result.retryable is False

    def test_success_has_no_error_fields(self):
        from garage_comms.communication import success_result, ServiceType

        data = success_result(ServiceType.OTP, "OTP sent", expires_in=300).to_dict()

        assert data["success"] is True
        assert "errorType" not in data
        assert "retryable" not in data
        assert data["metadata"] == {"expiresIn": 300}
        assert data["timestamp"].endswith("+00:00")

    def test_legacy_dict_mirrors_metadata(self):
        from garage_comms.communication import failure_result, ServiceType, ErrorType

        result = failure_result(
            ServiceType.OTP,
            "Too many OTP requests",
            error_type=ErrorType.RATE_LIMIT,
            rate_limited=True,
            retry_after=120,
        )
        data = result.to_legacy_dict()

        assert data["rateLimited"] is True
        assert data["retryAfter"] == 120
        assert data["metadata"]["rateLimited"] is True
        assert data["error"] == "Too many OTP requests"
        assert data["errorType"] == "rate_limit"

    def test_with_attempts_copies(self):
        from garage_comms.communication import failure_result, ServiceType

        original = failure_result(ServiceType.WHATSAPP, "Service unavailable")
        updated = original.with_attempts(retry_count=2, total_attempts=3)

        assert updated.retry_count == 2
        assert updated.total_attempts == 3
        assert original.retry_count is None

    def test_with_metadata(self):
        from garage_comms.communication import failure_result, ServiceType

        result = failure_result(ServiceType.WHATSAPP, "down", circuit_breaker_open=True)
        tagged = result.with_metadata(final_failure=True)

        assert tagged.circuit_open is True
        assert tagged.metadata.final_failure is True
        assert result.metadata.final_failure is None
