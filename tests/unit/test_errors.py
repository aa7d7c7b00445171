"""
Unit tests for provider error classification and retry hints
"""
import asyncio

import pytest

from redesign_api.core.errors import (
    ErrorKind,
    RedesignServiceError,
    classify_provider_error,
    invalid_request_error,
    kind_from_http_status,
    not_configured_error,
    parse_retry_after,
)


class ProviderError(Exception):
    """Mimics SDK errors that carry an HTTP status code and structured details"""

    def __init__(self, message, code=None, details=None):
        super().__init__(message)
        self.code = code
        self.details = details


class TestParseRetryAfter:
    """Tests for retry-after extraction"""

    @pytest.mark.unit
    def test_retry_in_pattern(self):
        assert parse_retry_after("Quota exceeded. Please retry in 12s.") == 12

    @pytest.mark.unit
    def test_fractional_seconds_round_up(self):
        assert parse_retry_after("Please retry in 4.2s") == 5

    @pytest.mark.unit
    def test_retry_info_detail_wins(self):
        details = [
            {"@type": "type.googleapis.com/google.rpc.QuotaFailure"},
            {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "33s"},
        ]
        assert parse_retry_after("Please retry in 12s", details) == 33

    @pytest.mark.unit
    def test_no_hint(self):
        assert parse_retry_after("Too many requests") is None
        assert parse_retry_after("") is None


class TestClassifyProviderError:
    """Tests for mapping raw provider failures onto the error taxonomy"""

    @pytest.mark.unit
    def test_classified_error_passes_through(self):
        error = RedesignServiceError(ErrorKind.INVALID_REQUEST, "bad")
        assert classify_provider_error(error) is error

    @pytest.mark.unit
    def test_status_code_429_with_retry_info(self):
        details = {
            "error": {
                "code": 429,
                "details": [{"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "7.5s"}],
            }
        }
        error = classify_provider_error(ProviderError("RESOURCE_EXHAUSTED", code=429, details=details))

        assert error.kind == ErrorKind.RATE_LIMITED
        assert error.retry_after_seconds == 8
        assert error.http_status == 429

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "code,kind",
        [
            (401, ErrorKind.UNAUTHORIZED),
            (403, ErrorKind.UNAUTHORIZED),
            (503, ErrorKind.UPSTREAM_UNAVAILABLE),
        ],
    )
    def test_status_codes(self, code, kind):
        assert classify_provider_error(ProviderError("failed", code=code)).kind == kind

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "message,kind",
        [
            ("API key not valid. Please pass a valid API key.", ErrorKind.UNAUTHORIZED),
            ("429 Too Many Requests", ErrorKind.RATE_LIMITED),
            ("You exceeded your current quota", ErrorKind.RATE_LIMITED),
            ("connect ECONNREFUSED 127.0.0.1:443", ErrorKind.UPSTREAM_UNAVAILABLE),
            ("Request timed out", ErrorKind.UPSTREAM_UNAVAILABLE),
            ("Something odd happened", ErrorKind.UNKNOWN),
        ],
    )
    def test_message_patterns(self, message, kind):
        assert classify_provider_error(Exception(message)).kind == kind

    @pytest.mark.unit
    def test_unauthorized_checked_before_rate_limit(self):
        error = classify_provider_error(Exception("401 unauthorized, quota exceeded"))
        assert error.kind == ErrorKind.UNAUTHORIZED
        assert error.retry_after_seconds is None

    @pytest.mark.unit
    def test_transport_errors_are_upstream_unavailable(self):
        assert classify_provider_error(asyncio.TimeoutError()).kind == ErrorKind.UPSTREAM_UNAVAILABLE
        assert classify_provider_error(ConnectionResetError("reset")).kind == ErrorKind.UPSTREAM_UNAVAILABLE

    @pytest.mark.unit
    def test_retry_hint_only_for_rate_limits(self):
        error = classify_provider_error(Exception("Service unavailable, retry in 30s"))
        assert error.kind == ErrorKind.UPSTREAM_UNAVAILABLE
        assert error.retry_after_seconds is None


class TestServiceError:
    """Tests for the error payload and status mapping"""

    @pytest.mark.unit
    def test_http_status_by_kind(self):
        assert not_configured_error().http_status == 503
        assert invalid_request_error("missing").http_status == 400
        assert RedesignServiceError(ErrorKind.UNKNOWN, "x").http_status == 500
        assert RedesignServiceError(ErrorKind.UPSTREAM_UNAVAILABLE, "x").http_status == 502

    @pytest.mark.unit
    def test_payload_includes_retry_hint(self):
        error = RedesignServiceError(ErrorKind.RATE_LIMITED, "slow down", retry_after_seconds=12)
        assert error.to_payload() == {"error": "slow down", "retryAfterSeconds": 12}
        assert invalid_request_error("prompt is required").to_payload() == {"error": "prompt is required"}

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status,kind",
        [
            (503, ErrorKind.NOT_CONFIGURED),
            (401, ErrorKind.UNAUTHORIZED),
            (429, ErrorKind.RATE_LIMITED),
            (502, ErrorKind.UPSTREAM_UNAVAILABLE),
            (400, ErrorKind.INVALID_REQUEST),
            (422, ErrorKind.INVALID_REQUEST),
            (500, ErrorKind.UNKNOWN),
            (418, ErrorKind.UNKNOWN),
        ],
    )
    def test_kind_from_http_status(self, status, kind):
        assert kind_from_http_status(status) == kind
