"""Error types shared by every service call and the HTTP layer."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

logger = logging.getLogger(__name__)


class APIError(Exception):
    """An error that maps to an HTTP status and names the failing service."""

    def __init__(self, message: str, status_code: int = 500, service: str = "unknown") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.service = service


class RateLimitError(APIError):
    def __init__(self, service: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for {service}"
        if retry_after:
            message += f". Retry after {retry_after}s"
        super().__init__(message, 429, service)
        self.retry_after = retry_after


class ValidationError(APIError):
    def __init__(self, message: str, field: str | None = None) -> None:
        text = f"Validation error: {message}"
        if field:
            text += f" (field: {field})"
        super().__init__(text, 400, "validation")
        self.field = field


class WorkflowStateError(APIError):
    """Raised when a wizard step is attempted out of order."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409, "workflow")


def _response_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])
    return response.reason_phrase


def translate_error(exc: BaseException, service: str) -> APIError:
    """Map any exception raised while talking to *service* onto an APIError."""
    if isinstance(exc, APIError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            return RateLimitError(
                service, int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        return APIError(
            f"{service} API error: {_response_message(response)}",
            response.status_code,
            service,
        )

    if isinstance(exc, httpx.RequestError):
        return APIError(f"Network error connecting to {service}", 503, service)

    return APIError(f"Unexpected error in {service}: {exc}", 500, service)


def log_error(error: APIError, context: dict | None = None) -> None:
    logger.error(
        "[%s] %s: %s (status=%d, context=%s)",
        error.service.upper(),
        type(error).__name__,
        error.message,
        error.status_code,
        context or {},
    )


def error_response(error: APIError) -> dict:
    return {
        "error": {
            "message": error.message,
            "service": error.service,
            "status_code": error.status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
