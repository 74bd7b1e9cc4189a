"""Perplexity research backend — Sonar chat completions via httpx."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from wordposty.backends.base import extract_json
from wordposty.config import settings
from wordposty.errors import APIError, translate_error
from wordposty.models.research import ResearchResult

logger = logging.getLogger(__name__)

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"

SYSTEM_PROMPT = (
    "You are a professional content researcher and SEO analyst. "
    "Provide structured analysis in JSON format."
)

ANALYSIS_PROMPT = """\
Analyze the following sources for blog content creation:

SOURCES:
{sources}

TOPIC: {topic}
TARGET AUDIENCE: {audience}

Using your web search capabilities and reasoning, provide analysis in this EXACT JSON format:

{{
  "key_insights": ["insight 1", "insight 2", "insight 3", "insight 4", "insight 5"],
  "main_themes": ["theme 1", "theme 2", "theme 3"],
  "current_trends": ["trend 1", "trend 2", "trend 3"],
  "seo_keywords": ["primary keyword", "secondary 1", "secondary 2", "long tail 1", "long tail 2"],
  "factual_claims": ["claim 1 with verification", "claim 2 with verification"],
  "citations": ["source 1 with URL", "source 2 with URL", "source 3 with URL"]
}}

Requirements:
1. Extract 5-7 key insights with current data from {year}
2. Identify 3 main themes that emerge from the sources
3. Find 3 trending topics related to the subject using web search
4. Suggest 5 SEO keywords (1 primary, 2 secondary, 2 long-tail)
5. Verify 2 important factual claims from the sources
6. Provide 3 credible citations with URLs

Respond ONLY with valid JSON - no additional text or explanation.\
"""


class PerplexityBackend:
    """Research backend using Perplexity's web-grounded Sonar models."""

    name: str = "perplexity"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.perplexity_api_key
        self.model = model or settings.research_model
        self.transport = transport

    async def analyze_sources(
        self, topic: str, sources_text: str, target_audience: str | None = None
    ) -> ResearchResult:
        """Send formatted sources and a topic for analysis."""
        prompt = self.build_prompt(topic, sources_text, target_audience)
        raw_text = await self.complete(SYSTEM_PROMPT, prompt, temperature=0.3, max_tokens=2000)
        return self.parse_response(raw_text)

    async def complete(
        self,
        system: str,
        prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        """Run one chat completion and return the assistant text."""
        if not self.api_key:
            raise APIError("Perplexity API key is not configured", 500, self.name)

        try:
            async with httpx.AsyncClient(timeout=120.0, transport=self.transport) as client:
                response = await client.post(
                    PERPLEXITY_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "messages": [
                            {"role": "system", "content": system},
                            {"role": "user", "content": prompt},
                        ],
                        "search_mode": "web",
                        "reasoning_effort": "high",
                        "temperature": temperature,
                        "max_tokens": max_tokens,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise translate_error(exc, self.name) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise APIError("Invalid JSON response from Perplexity API", 502, self.name) from exc
        if not isinstance(data, dict):
            raise APIError("Unexpected response from Perplexity API", 502, self.name)

        choices = data.get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content") or ""

    def build_prompt(
        self, topic: str, sources_text: str, target_audience: str | None = None
    ) -> str:
        return ANALYSIS_PROMPT.format(
            sources=sources_text,
            topic=topic,
            audience=target_audience or "General audience",
            year=datetime.now().year,
        )

    def parse_response(self, raw_text: str) -> ResearchResult:
        """Parse the analysis JSON, falling back to placeholder findings."""
        try:
            parsed = extract_json(raw_text)
            if not isinstance(parsed.get("key_insights"), list):
                raise ValueError("Invalid key_insights in response")
            return ResearchResult.from_dict(parsed)
        except ValueError as exc:
            logger.warning("Perplexity: failed to parse analysis, using fallback: %s", exc)
            return ResearchResult.fallback()
