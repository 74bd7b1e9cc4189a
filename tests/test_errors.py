"""Tests for error translation and the error envelope."""

import httpx
import pytest

from wordposty.errors import (
    APIError,
    RateLimitError,
    ValidationError,
    error_response,
    translate_error,
)


def _status_error(status: int, **kwargs) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://api.example.com/v1")
    response = httpx.Response(status, request=request, **kwargs)
    return httpx.HTTPStatusError("boom", request=request, response=response)


class TestTranslateError:
    def test_passes_api_errors_through(self):
        error = APIError("already mapped", 418, "teapot")
        assert translate_error(error, "writer") is error

    def test_429_becomes_rate_limit_with_retry_after(self):
        error = translate_error(_status_error(429, headers={"retry-after": "30"}), "research")

        assert isinstance(error, RateLimitError)
        assert error.status_code == 429
        assert error.retry_after == 30
        assert error.service == "research"

    def test_429_with_date_retry_after_has_no_seconds(self):
        error = translate_error(
            _status_error(429, headers={"retry-after": "Wed, 21 Oct 2026 07:28:00 GMT"}),
            "research",
        )
        assert isinstance(error, RateLimitError)
        assert error.retry_after is None

    def test_http_status_keeps_code_and_service_message(self):
        error = translate_error(
            _status_error(401, json={"error": {"message": "invalid x-api-key"}}), "claude"
        )

        assert error.status_code == 401
        assert error.message == "claude API error: invalid x-api-key"

    def test_network_error_is_503(self):
        request = httpx.Request("GET", "https://api.example.com")
        error = translate_error(httpx.ConnectError("refused", request=request), "imagen")

        assert error.status_code == 503
        assert error.message == "Network error connecting to imagen"

    def test_anything_else_is_500(self):
        error = translate_error(RuntimeError("oops"), "wordpress")

        assert error.status_code == 500
        assert error.message == "Unexpected error in wordpress: oops"


class TestErrorTypes:
    def test_validation_error_names_field(self):
        error = ValidationError("Topic is required", "topic")

        assert error.status_code == 400
        assert error.service == "validation"
        assert error.message == "Validation error: Topic is required (field: topic)"

    @pytest.mark.parametrize("retry_after, suffix", [(12, ". Retry after 12s"), (None, "")])
    def test_rate_limit_message(self, retry_after, suffix):
        error = RateLimitError("writer", retry_after)
        assert error.message == f"Rate limit exceeded for writer{suffix}"

    def test_error_response_envelope(self):
        body = error_response(APIError("Not found", 404, "workflow"))

        assert body["error"]["message"] == "Not found"
        assert body["error"]["service"] == "workflow"
        assert body["error"]["status_code"] == 404
        assert "timestamp" in body["error"]
