"""SEO keyword analysis data models."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class HeadingTerm:
    term: str
    frequency: int = 0
    heading_levels: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)
    relevance_score: float = 0.0
    variations: list[str] = field(default_factory=list)


@dataclass
class ContentTerm:
    term: str
    frequency: int = 0
    relevance_score: float = 0.0
    context: str = ""
    variations: list[str] = field(default_factory=list)


@dataclass
class SingleWord:
    word: str
    frequency: int = 0
    heading_levels: list[str] = field(default_factory=list)


@dataclass
class HeadingPatterns:
    common_structures: list[str] = field(default_factory=list)
    avg_headings_per_page: float = 0.0
    h1_patterns: list[str] = field(default_factory=list)
    h2_patterns: list[str] = field(default_factory=list)
    h3_patterns: list[str] = field(default_factory=list)
    total_headings_analyzed: int = 0


@dataclass
class StrategicInsights:
    top_opportunities: list[str] = field(default_factory=list)
    competitor_gaps: list[str] = field(default_factory=list)
    recommended_structure: list[str] = field(default_factory=list)


@dataclass
class SEOAnalysis:
    """Term frequency analysis of the top-ranking pages for a keyword."""

    keyword: str
    heading_terms: list[HeadingTerm] = field(default_factory=list)
    content_terms: list[ContentTerm] = field(default_factory=list)
    top_single_words: list[SingleWord] = field(default_factory=list)
    heading_patterns: HeadingPatterns = field(default_factory=HeadingPatterns)
    strategic_insights: StrategicInsights = field(default_factory=StrategicInsights)
    analyzed_urls: list[str] = field(default_factory=list)
    analysis_date: str = ""
    total_results: int = 0
    total_headings_found: int = 0
    total_content_words_analyzed: int = 0
    total_content_terms_found: int = 0
