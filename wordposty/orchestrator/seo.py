"""SEO keyword analysis of heading and content terms in top search results."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from wordposty.backends.base import extract_json
from wordposty.backends.perplexity import PerplexityBackend
from wordposty.errors import APIError, ValidationError
from wordposty.models.seo import (
    ContentTerm,
    HeadingPatterns,
    HeadingTerm,
    SEOAnalysis,
    SingleWord,
    StrategicInsights,
)

logger = logging.getLogger(__name__)

MAX_KEYWORD_LENGTH = 100

SYSTEM_PROMPT = (
    "You are a professional SEO analyst. Analyze the top Google search results "
    "and provide structured data in JSON format."
)

SEO_PROMPT = """\
Analyze Google search results for: "{keyword}"

Search for the exact keyword "{keyword}" and analyze the top {max_results} ranking pages.
Focus on heading and content term frequency:

1. Extract all H1, H2 and H3 headings and the body text of each page
2. Identify key phrases (2-4 words) in headings and in body content
3. Count how often each phrase appears across all pages
4. Group similar variations and score relevance from 0 to 1
5. Describe common heading patterns and structures

Return analysis in this exact JSON format:

{{
  "heading_terms": [
    {{"term": "...", "frequency": 3, "heading_levels": ["h1", "h2"],
      "examples": ["..."], "relevance_score": 0.9, "variations": ["..."]}}
  ],
  "content_terms": [
    {{"term": "...", "frequency": 4, "relevance_score": 0.8,
      "context": "...", "variations": ["..."]}}
  ],
  "top_single_words": [
    {{"word": "...", "frequency": 15, "heading_levels": ["h1", "h2", "h3"]}}
  ],
  "heading_patterns": {{
    "common_structures": ["..."], "avg_headings_per_page": 8.5,
    "h1_patterns": ["..."], "h2_patterns": ["..."], "h3_patterns": ["..."],
    "total_headings_analyzed": 120
  }},
  "strategic_insights": {{
    "top_opportunities": ["..."], "competitor_gaps": ["..."],
    "recommended_structure": ["..."]
  }},
  "analyzed_urls": ["https://..."],
  "total_results": {max_results},
  "total_headings_found": 120,
  "total_content_words_analyzed": 8500,
  "total_content_terms_found": 45
}}

Relevance should weigh frequency and heading level (H1 > H2 > H3).
Respond ONLY with valid JSON - no explanations."""


def _strings(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _number(value, default: float = 0) -> float:
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else default


def _heading_term(data: dict) -> HeadingTerm:
    return HeadingTerm(
        term=str(data.get("term") or ""),
        frequency=int(_number(data.get("frequency"))),
        heading_levels=_strings(data.get("heading_levels")),
        examples=_strings(data.get("examples")),
        relevance_score=float(_number(data.get("relevance_score"))),
        variations=_strings(data.get("variations")),
    )


def _content_term(data: dict) -> ContentTerm:
    return ContentTerm(
        term=str(data.get("term") or ""),
        frequency=int(_number(data.get("frequency"))),
        relevance_score=float(_number(data.get("relevance_score"))),
        context=str(data.get("context") or ""),
        variations=_strings(data.get("variations")),
    )


def _single_word(data: dict) -> SingleWord:
    return SingleWord(
        word=str(data.get("word") or ""),
        frequency=int(_number(data.get("frequency"))),
        heading_levels=_strings(data.get("heading_levels")),
    )


def _dicts(value) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def fallback_analysis(keyword: str) -> SEOAnalysis:
    """Marker analysis returned when the research reply cannot be parsed."""
    return SEOAnalysis(
        keyword=keyword,
        heading_terms=[
            HeadingTerm(
                term="analysis failed",
                frequency=1,
                heading_levels=["error"],
                examples=["Please retry the analysis"],
                relevance_score=0.1,
                variations=["retry analysis"],
            )
        ],
        content_terms=[
            ContentTerm(
                term="retry analysis",
                frequency=1,
                relevance_score=0.1,
                context="Please retry the analysis",
                variations=["analysis failed"],
            )
        ],
        top_single_words=[SingleWord(word="error", frequency=1, heading_levels=["error"])],
        heading_patterns=HeadingPatterns(
            common_structures=["Error occurred"],
            h1_patterns=["Analysis failed"],
            h2_patterns=["Please retry"],
            h3_patterns=["Check connection"],
        ),
        strategic_insights=StrategicInsights(
            top_opportunities=["Retry analysis"],
            competitor_gaps=["Analysis incomplete"],
            recommended_structure=["Please try again"],
        ),
        analyzed_urls=["Error: No URLs analyzed"],
        analysis_date=datetime.now(timezone.utc).isoformat(),
    )


def validate_keyword(keyword: str) -> str:
    keyword = (keyword or "").strip()
    if not keyword:
        raise ValidationError("Keyword is required and cannot be empty", "keyword")
    if len(keyword) > MAX_KEYWORD_LENGTH:
        raise ValidationError(
            f"Keyword must be {MAX_KEYWORD_LENGTH} characters or less", "keyword"
        )
    return keyword


class SEOAnalyzer:
    def __init__(self, research: PerplexityBackend | None = None) -> None:
        self.research = research or PerplexityBackend()

    async def analyze_keyword(self, keyword: str, max_results: int = 15) -> SEOAnalysis:
        keyword = validate_keyword(keyword)
        logger.info("SEO: analyzing keyword %r", keyword)

        prompt = SEO_PROMPT.format(keyword=keyword, max_results=max_results)
        try:
            raw_text = await self.research.complete(
                SYSTEM_PROMPT, prompt, temperature=0.2, max_tokens=3000
            )
        except APIError as exc:
            raise APIError(f"SEO analysis failed: {exc.message}", exc.status_code, "seo-analysis") from exc

        analysis = self.parse_response(raw_text, keyword)
        logger.info(
            "SEO: %d heading terms, %d single words from %d urls",
            len(analysis.heading_terms),
            len(analysis.top_single_words),
            len(analysis.analyzed_urls),
        )
        return analysis

    def parse_response(self, raw_text: str, keyword: str) -> SEOAnalysis:
        try:
            data = extract_json(raw_text)
            if (
                not isinstance(data.get("heading_terms"), list)
                or not isinstance(data.get("top_single_words"), list)
                or not isinstance(data.get("analyzed_urls"), list)
            ):
                raise ValueError("Invalid SEO analysis response structure")
        except ValueError as exc:
            logger.warning("SEO: failed to parse analysis, using fallback: %s", exc)
            return fallback_analysis(keyword)

        heading_terms = [_heading_term(item) for item in _dicts(data["heading_terms"])]
        heading_terms.sort(key=lambda t: (t.frequency, t.relevance_score), reverse=True)
        single_words = [_single_word(item) for item in _dicts(data["top_single_words"])]
        single_words.sort(key=lambda w: w.frequency, reverse=True)

        patterns = data.get("heading_patterns") if isinstance(data.get("heading_patterns"), dict) else {}
        insights = data.get("strategic_insights") if isinstance(data.get("strategic_insights"), dict) else {}

        return SEOAnalysis(
            keyword=keyword,
            heading_terms=heading_terms,
            content_terms=[_content_term(item) for item in _dicts(data.get("content_terms"))],
            top_single_words=single_words,
            heading_patterns=HeadingPatterns(
                common_structures=_strings(patterns.get("common_structures")),
                avg_headings_per_page=float(_number(patterns.get("avg_headings_per_page"))),
                h1_patterns=_strings(patterns.get("h1_patterns")),
                h2_patterns=_strings(patterns.get("h2_patterns")),
                h3_patterns=_strings(patterns.get("h3_patterns")),
                total_headings_analyzed=int(_number(patterns.get("total_headings_analyzed"))),
            ),
            strategic_insights=StrategicInsights(
                top_opportunities=_strings(insights.get("top_opportunities")),
                competitor_gaps=_strings(insights.get("competitor_gaps")),
                recommended_structure=_strings(insights.get("recommended_structure")),
            ),
            analyzed_urls=_strings(data["analyzed_urls"]),
            analysis_date=datetime.now(timezone.utc).isoformat(),
            total_results=int(_number(data.get("total_results"))),
            total_headings_found=int(_number(data.get("total_headings_found"))),
            total_content_words_analyzed=int(_number(data.get("total_content_words_analyzed"))),
            total_content_terms_found=int(_number(data.get("total_content_terms_found"))),
        )

    # -- Helpers over a finished analysis --

    @staticmethod
    def content_outline(analysis: SEOAnalysis) -> list[str]:
        outline = [t.term for t in analysis.heading_terms[:8] if t.relevance_score > 0.6]
        outline.extend(analysis.strategic_insights.recommended_structure[:3])
        return outline[:10]

    @staticmethod
    def extract_keywords(analysis: SEOAnalysis) -> list[str]:
        keywords: list[str] = []
        relevant = [t for t in analysis.heading_terms if t.relevance_score > 0.5][:10]
        for term in relevant:
            keywords.append(term.term)
            keywords.extend(term.variations[:2])
        keywords.extend(word.word for word in analysis.top_single_words[:10])
        return list(dict.fromkeys(keywords))[:20]

    @staticmethod
    def heading_level_insights(analysis: SEOAnalysis) -> dict[str, list[str]]:
        def focus(level: str, limit: int) -> list[str]:
            return [t.term for t in analysis.heading_terms if level in t.heading_levels][:limit]

        return {
            "h1_focus": focus("h1", 5),
            "h2_focus": focus("h2", 8),
            "h3_focus": focus("h3", 10),
        }

    @staticmethod
    def insights(analysis: SEOAnalysis) -> dict:
        """Derived suggestions shown next to the raw frequencies."""
        structure = list(analysis.strategic_insights.top_opportunities)
        if analysis.heading_patterns.avg_headings_per_page:
            structure.append(
                f"Average {analysis.heading_patterns.avg_headings_per_page} headings per page"
            )
        if analysis.heading_patterns.total_headings_analyzed:
            structure.append(
                f"Analyzed {analysis.heading_patterns.total_headings_analyzed} total headings"
            )

        return {
            "top_headings": [
                {
                    "text": t.term,
                    "frequency": t.frequency,
                    "levels": t.heading_levels,
                    "relevance": t.relevance_score,
                }
                for t in analysis.heading_terms[:10]
            ],
            "content_suggestions": [
                {
                    "suggestion": f"Create content about {t.term}",
                    "relevance": t.relevance_score,
                    "frequency": t.frequency,
                    "heading_levels": t.heading_levels,
                }
                for t in analysis.heading_terms
                if t.relevance_score > 0.6
            ][:8],
            "competitor_insights": {
                "common_heading_patterns": analysis.heading_patterns.common_structures,
                "content_focus": [w.word for w in analysis.top_single_words[:5]],
                "structure_insights": structure,
            },
        }
