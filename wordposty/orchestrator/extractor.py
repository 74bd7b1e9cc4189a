"""Fetches a page and pulls readable text out of it with BeautifulSoup."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from wordposty.backends.base import count_words
from wordposty.errors import APIError
from wordposty.models.source import ExtractedContent

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

TITLE_SELECTORS = [
    'meta[property="og:title"]',
    'meta[name="twitter:title"]',
    "h1",
    "title",
    ".entry-title",
    ".post-title",
    ".article-title",
]

DESCRIPTION_SELECTORS = [
    'meta[property="og:description"]',
    'meta[name="twitter:description"]',
    'meta[name="description"]',
    ".excerpt",
    ".summary",
    ".lead",
]

CONTENT_SELECTORS = [
    "article",
    '[role="main"]',
    ".entry-content",
    ".post-content",
    ".article-content",
    ".content",
    "main",
    ".main-content",
    "#content",
    ".post-body",
    ".article-body",
]

DATE_SELECTORS = [
    'meta[property="article:published_time"]',
    'meta[name="date"]',
    "time[datetime]",
    ".published",
    ".date",
]

AUTHOR_SELECTORS = [
    'meta[property="article:author"]',
    'meta[name="author"]',
    ".author",
    ".byline",
    '[rel="author"]',
]

NOISE = (
    "script, style, noscript, nav, header, footer, aside, "
    ".sidebar, .menu, .navigation, .comments, .social-share"
)

MIN_CONTENT_CHARS = 200


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _first_text(soup: BeautifulSoup, selectors: list[str]) -> str | None:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        if element.name == "meta":
            text = element.get("content")
        elif element.name == "time":
            text = element.get("datetime") or element.get_text()
        else:
            text = element.get_text()
        if text and text.strip():
            return text.strip()
    return None


class URLExtractor:
    """Turns an article URL into plain text plus basic metadata."""

    def __init__(
        self,
        timeout: float = 30.0,
        max_content_length: int = 50000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_content_length = max_content_length
        self.transport = transport

    async def extract(self, url: str) -> ExtractedContent:
        if not is_valid_url(url):
            raise APIError("Invalid URL format", 400, "url-extractor")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                max_redirects=5,
                headers=REQUEST_HEADERS,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise APIError("Request timeout - page took too long to load", 504, "url-extractor") from exc
        except httpx.HTTPStatusError as exc:
            raise APIError(_status_message(exc.response.status_code), 502, "url-extractor") from exc
        except httpx.HTTPError as exc:
            raise APIError(f"Could not fetch page: {exc}", 502, "url-extractor") from exc

        extracted = self.parse_html(response.text, url)
        if not extracted.content:
            raise APIError("No readable content found on the page", 422, "url-extractor")
        logger.info("Extracted %d words from %s", extracted.word_count, url)
        return extracted

    def parse_html(self, html: str, url: str) -> ExtractedContent:
        soup = BeautifulSoup(html, "html.parser")

        title = _first_text(soup, TITLE_SELECTORS) or "Untitled Article"
        description = _first_text(soup, DESCRIPTION_SELECTORS) or ""
        publish_date = _first_text(soup, DATE_SELECTORS)
        author = _first_text(soup, AUTHOR_SELECTORS)
        tags = self._tags(soup)

        content = clean_text(self._main_content(soup))
        if len(content) > self.max_content_length:
            content = content[: self.max_content_length] + "..."

        return ExtractedContent(
            title=clean_text(title),
            description=description,
            content=content,
            word_count=count_words(content),
            url=url,
            author=author,
            publish_date=publish_date,
            tags=tags,
        )

    def _main_content(self, soup: BeautifulSoup) -> str:
        for element in soup.select(NOISE):
            element.decompose()

        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                text = element.get_text(" ")
                if len(text.strip()) > MIN_CONTENT_CHARS:
                    return text

        body = soup.body or soup
        return body.get_text(" ")

    @staticmethod
    def _tags(soup: BeautifulSoup) -> list[str]:
        tags: list[str] = []
        for element in soup.select('meta[property="article:tag"], .tags a, .tag, .category'):
            tag = (element.get("content") or element.get_text()).strip()
            if tag and tag not in tags:
                tags.append(tag)
        return tags


def _status_message(status: int) -> str:
    if status == 404:
        return "Page not found (404)"
    if status == 403:
        return "Access forbidden (403) - site may block automated requests"
    if status >= 500:
        return "Server error - please try again later"
    return f"Page returned HTTP {status}"
