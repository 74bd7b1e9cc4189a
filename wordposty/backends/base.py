"""Protocols and response helpers shared by the external service backends."""

from __future__ import annotations

import json
import re
from typing import Protocol, runtime_checkable

from wordposty.models.article import ArticleRequest, GeneratedArticle
from wordposty.models.research import ResearchResult

JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
HTML_TAG = re.compile(r"<[^>]*>")


@runtime_checkable
class ResearchBackend(Protocol):
    """Interface for the web-research service."""

    name: str

    async def analyze_sources(
        self, topic: str, sources_text: str, target_audience: str | None = None
    ) -> ResearchResult:
        ...


@runtime_checkable
class WriterBackend(Protocol):
    """Interface for the long-form writing service."""

    name: str

    async def generate_article(self, request: ArticleRequest) -> GeneratedArticle:
        ...


def extract_json(raw_text: str) -> dict:
    """Pull the outermost JSON object out of a model reply.

    Replies are often wrapped in markdown fences or prose, so everything
    between the first ``{`` and the last ``}`` is parsed.
    Raises ValueError when no object can be decoded.
    """
    text = raw_text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
        text = text.rsplit("```", 1)[0]

    match = JSON_OBJECT.search(text)
    if not match:
        raise ValueError("No JSON found in response")
    parsed = json.loads(match.group(0))
    if not isinstance(parsed, dict):
        raise ValueError("Response JSON is not an object")
    return parsed


def count_words(text: str) -> int:
    return len(text.split())


def strip_tags(html: str) -> str:
    return HTML_TAG.sub("", html)
