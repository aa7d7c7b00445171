"""
Unit tests for the proxy HTTP client and its error decoding
"""
import json
from unittest.mock import AsyncMock, patch

import pytest

from redesign_api.core.errors import ErrorKind, RedesignServiceError
from redesign_api.services.api_client import RedesignAPIClient, error_from_response
from redesign_api.utils.images import InlineImage


class TestErrorFromResponse:
    """Tests for rebuilding classified errors from proxy responses"""

    @pytest.mark.unit
    def test_json_body_with_retry_hint(self):
        body = json.dumps({"error": "Quota exceeded", "retryAfterSeconds": 12})

        error = error_from_response(429, "Too Many Requests", body)

        assert error.kind == ErrorKind.RATE_LIMITED
        assert error.retry_after_seconds == 12
        assert error.message == "429 Too Many Requests - Quota exceeded"

    @pytest.mark.unit
    def test_retry_after_header(self):
        error = error_from_response(429, "Too Many Requests", json.dumps({"error": "slow"}), {"Retry-After": "30"})
        assert error.retry_after_seconds == 30

    @pytest.mark.unit
    def test_plain_text_body_retry_pattern(self):
        error = error_from_response(429, "Too Many Requests", "Please retry in 5.5s")
        assert error.retry_after_seconds == 6
        assert error.message == "429 Too Many Requests - Please retry in 5.5s"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status,kind",
        [
            (503, ErrorKind.NOT_CONFIGURED),
            (401, ErrorKind.UNAUTHORIZED),
            (502, ErrorKind.UPSTREAM_UNAVAILABLE),
            (400, ErrorKind.INVALID_REQUEST),
            (500, ErrorKind.UNKNOWN),
        ],
    )
    def test_kind_follows_status(self, status, kind):
        error = error_from_response(status, "Error", json.dumps({"error": "failed"}))
        assert error.kind == kind
        assert error.retry_after_seconds is None

    @pytest.mark.unit
    def test_json_without_error_field_is_echoed(self):
        error = error_from_response(500, "Internal Server Error", json.dumps({"detail": "boom"}))
        assert error.message == '500 Internal Server Error - {"detail": "boom"}'


class TestRedesignAPIClient:
    """Tests for the gateway methods over HTTP"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_request_redesign_posts_data_url(self, room_image):
        client = RedesignAPIClient("http://localhost:8000/")
        generated = InlineImage(data=b"new-design", mime_type="image/png")

        with patch.object(client, "_post", AsyncMock(return_value={"image": generated.to_data_url()})) as post:
            result = await client.request_redesign(room_image, "Coastal")

        assert result == generated
        post.assert_awaited_once_with(
            "/api/generate-image",
            {"imageBase64": room_image.to_data_url(), "prompt": "Coastal", "isRefinement": False},
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_turn(self):
        client = RedesignAPIClient("http://localhost:8000")

        with patch.object(client, "_post", AsyncMock(return_value={"text": "Sounds lovely"})) as post:
            text = await client.send_turn("Japandi", "Ideas for the floor?")

        assert text == "Sounds lovely"
        post.assert_awaited_once_with("/api/chat", {"style": "Japandi", "message": "Ideas for the floor?"})

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_failure_is_upstream_unavailable(self):
        # Nothing listens on port 9; the connection is refused
        client = RedesignAPIClient("http://127.0.0.1:9", timeout=5)
        try:
            with pytest.raises(RedesignServiceError) as exc_info:
                await client.send_turn("Modern", "Hi")
        finally:
            await client.close()

        assert exc_info.value.kind == ErrorKind.UPSTREAM_UNAVAILABLE

    @pytest.mark.unit
    def test_base_url_trailing_slash_is_trimmed(self):
        assert RedesignAPIClient("http://example.com/").base_url == "http://example.com"
