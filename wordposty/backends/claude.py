"""Claude writing backend — Anthropic Messages API via httpx."""

from __future__ import annotations

import logging

import httpx

from wordposty.backends.base import extract_json, strip_tags
from wordposty.config import settings
from wordposty.errors import APIError, translate_error
from wordposty.models.article import ArticleRequest, GeneratedArticle
from wordposty.orchestrator.prompts import (
    PromptTemplateManager,
    render_text,
    template_manager,
)

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_TEMPLATE = "conversational"

SYSTEM_PROMPT = (
    "You are a professional blogger with 10+ years of experience writing engaging, "
    "human-like content. Always respond with valid JSON format."
)

JSON_INSTRUCTIONS = """\


IMPORTANT: Respond with ONLY valid JSON in this exact format:

{{
  "title": "Engaging blog post title (50-60 characters)",
  "content": "Full blog post content in HTML format with proper headings, paragraphs, and formatting",
  "meta_description": "SEO-optimized meta description (150-160 characters)",
  "tags": ["tag1", "tag2", "tag3", "tag4", "tag5"],
  "seo_score": 85,
  "excerpt": "Brief excerpt for blog preview (150-200 characters)"
}}

The content should be approximately {word_count} words and feel genuinely human-written.\
"""

META_PROMPT = """\
Generate SEO metadata for this blog post:

TITLE: {title}
CONTENT: {content}...

Respond with JSON only:
{{
  "meta_description": "150-160 character SEO description",
  "tags": ["tag1", "tag2", "tag3", "tag4", "tag5"]
}}\
"""


class ClaudeBackend:
    """Writing backend using Anthropic's Claude API."""

    name: str = "claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        templates: PromptTemplateManager | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or settings.writer_model
        self.templates = templates or template_manager
        self.transport = transport

    async def generate_article(self, request: ArticleRequest) -> GeneratedArticle:
        """Write a blog post from the research analysis."""
        prompt = self.build_prompt(request)
        raw_text = await self._create_message(
            prompt, system=SYSTEM_PROMPT, max_tokens=4000, temperature=0.7
        )
        return self.parse_article(raw_text)

    async def generate_meta(self, content: str, title: str) -> dict:
        """Produce a meta description and tags for an existing post."""
        prompt = META_PROMPT.format(title=title, content=content[:1000])
        try:
            raw_text = await self._create_message(prompt, max_tokens=500, temperature=0.3)
            parsed = extract_json(raw_text)
            return {
                "meta_description": parsed.get("meta_description", ""),
                "tags": list(parsed.get("tags") or []),
            }
        except (APIError, ValueError) as exc:
            logger.warning("Claude: metadata generation failed, using fallback: %s", exc)
            return {
                "meta_description": "Generated blog post content.",
                "tags": ["blog", "content"],
            }

    def build_prompt(self, request: ArticleRequest) -> str:
        """Pick the custom prompt or a template and append the JSON contract."""
        variables = self.templates.prepare_variables(
            request.analysis,
            request.topic,
            request.word_count,
            request.tone,
            request.target_audience,
        )

        custom = (request.custom_prompt or "").strip()
        if custom:
            if "{" in custom:
                prompt = render_text(custom, variables)
            else:
                prompt = custom
        else:
            prompt = self.templates.render(request.template_id or DEFAULT_TEMPLATE, variables)

        return prompt + JSON_INSTRUCTIONS.format(word_count=request.word_count)

    def parse_article(self, raw_text: str) -> GeneratedArticle:
        """Parse the article JSON, falling back to a placeholder post."""
        try:
            parsed = extract_json(raw_text)
            if not (parsed.get("title") and parsed.get("content") and parsed.get("meta_description")):
                raise ValueError("Missing required fields in Claude response")

            excerpt = parsed.get("excerpt") or strip_tags(parsed["content"][:200]) + "..."
            return GeneratedArticle(
                title=parsed["title"],
                content=parsed["content"],
                meta_description=parsed["meta_description"],
                tags=list(parsed.get("tags") or []),
                seo_score=parsed.get("seo_score") or 75,
                excerpt=excerpt,
            )
        except (ValueError, TypeError) as exc:
            logger.warning("Claude: failed to parse article, using fallback: %s", exc)
            return GeneratedArticle.fallback()

    async def _create_message(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ) -> str:
        if not self.api_key:
            raise APIError("Anthropic API key is not configured", 500, self.name)

        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        try:
            async with httpx.AsyncClient(timeout=300.0, transport=self.transport) as client:
                response = await client.post(
                    ANTHROPIC_API_URL,
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": "2023-06-01",
                        "content-type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise translate_error(exc, self.name) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise APIError("Invalid JSON response from Anthropic API", 502, self.name) from exc
        if not isinstance(data, dict):
            raise APIError("Unexpected response from Anthropic API", 502, self.name)

        return "".join(
            block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"
        )
