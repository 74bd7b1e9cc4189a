"""Jina Reader backend: URLs and PDFs to plain text."""

from __future__ import annotations

import logging

import httpx

from wordposty.backends.base import count_words
from wordposty.config import settings
from wordposty.errors import APIError, translate_error
from wordposty.models.source import ExtractedContent

logger = logging.getLogger(__name__)

JINA_READER_URL = "https://r.jina.ai"

STATUS_MESSAGES = {
    400: "Invalid file or unsupported format.",
    401: "Jina AI authentication failed. Please check your API key.",
    404: "URL not found or cannot be accessed by Jina AI.",
    413: "File too large. Please try a smaller file.",
    429: "Jina AI rate limit exceeded. Please try again later.",
}


class JinaReader:
    """Reader service client used for pages and PDFs local parsing cannot handle."""

    name: str = "jina"

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.jina_api_key
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def read_url(self, url: str) -> ExtractedContent:
        logger.info("Jina: extracting %s", url)
        response = await self._request("GET", f"{JINA_READER_URL}/{url}", timeout=30.0)
        content, title, description = self._unpack(response, fallback_title=url)
        if not content.strip():
            raise APIError("No content could be extracted from this URL", 422, self.name)

        return ExtractedContent(
            title=title[:200],
            description=description[:300],
            content=content,
            word_count=count_words(content),
            url=url,
        )

    async def read_pdf(self, filename: str, data: bytes) -> ExtractedContent:
        logger.info("Jina: extracting PDF %s (%.2f MB)", filename, len(data) / 1024 / 1024)
        response = await self._request(
            "POST",
            f"{JINA_READER_URL}/",
            timeout=60.0,
            files={"file": (filename, data, "application/pdf")},
        )
        content, _, description = self._unpack(response, fallback_title=filename)
        if not content.strip():
            raise APIError(
                "No content could be extracted from this PDF. It might be image-based or encrypted.",
                422,
                self.name,
            )

        return ExtractedContent(
            title=filename,
            description=description[:300],
            content=content,
            word_count=count_words(content),
        )

    async def _request(self, method: str, url: str, timeout: float, **kwargs) -> httpx.Response:
        headers = {"Accept": "text/plain", "X-With-Generated-Alt": "true"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise APIError(
                "Request timeout. The source might be too slow or too large.", 504, self.name
            ) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in STATUS_MESSAGES:
                raise APIError(STATUS_MESSAGES[status], status, self.name) from exc
            raise translate_error(exc, self.name) from exc
        except httpx.HTTPError as exc:
            raise translate_error(exc, self.name) from exc
        return response

    @staticmethod
    def _unpack(response: httpx.Response, fallback_title: str) -> tuple[str, str, str]:
        """Return (content, title, description) from a text or JSON reply."""
        if response.headers.get("content-type", "").startswith("application/json"):
            data = response.json()
            payload = data.get("data", data) if isinstance(data, dict) else {}
            if not isinstance(payload, dict):
                payload = {}
            content = payload.get("content") or payload.get("text") or ""
            title = payload.get("title") or fallback_title
            description = payload.get("description") or content[:160] + "..."
            return content, title, description

        content = response.text
        lines = [line for line in content.splitlines() if line.strip()]
        title = lines[0][:100] if lines else fallback_title
        return content, title, content[:160] + "..."
