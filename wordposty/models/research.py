"""Research result data model."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ResearchResult:
    """Structured findings returned by the research service."""

    key_insights: list[str] = field(default_factory=list)
    main_themes: list[str] = field(default_factory=list)
    current_trends: list[str] = field(default_factory=list)
    seo_keywords: list[str] = field(default_factory=list)
    factual_claims: list[str] = field(default_factory=list)
    citations: list[str] = field(default_factory=list)

    @classmethod
    def fallback(cls) -> ResearchResult:
        """Placeholder findings used when the service reply cannot be parsed."""
        return cls(
            key_insights=["Analysis failed - manual review needed"],
            main_themes=["General content"],
            current_trends=["Current industry trends"],
            seo_keywords=["content", "blog", "article"],
            factual_claims=["Claims need verification"],
            citations=["Manual citation needed"],
        )

    @classmethod
    def from_dict(cls, data: dict) -> ResearchResult:
        def strings(key: str) -> list[str]:
            value = data.get(key) or []
            if not isinstance(value, list):
                return []
            return [str(v) for v in value]

        return cls(
            key_insights=strings("key_insights"),
            main_themes=strings("main_themes"),
            current_trends=strings("current_trends"),
            seo_keywords=strings("seo_keywords"),
            factual_claims=strings("factual_claims"),
            citations=strings("citations"),
        )
