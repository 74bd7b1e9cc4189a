"""Generated article and featured image data models."""

from __future__ import annotations

from dataclasses import dataclass, field

from wordposty.models.research import ResearchResult


@dataclass
class GeneratedArticle:
    """Structured blog post produced by the writing service."""

    title: str
    content: str
    meta_description: str
    tags: list[str] = field(default_factory=list)
    seo_score: int = 75
    excerpt: str = ""

    @classmethod
    def fallback(cls) -> GeneratedArticle:
        return cls(
            title="Blog Post Generation Failed",
            content=(
                "<p>There was an error generating the blog post. "
                "Please try again with different inputs.</p>"
            ),
            meta_description="Blog post generation encountered an error. Please retry.",
            tags=["error", "retry"],
            seo_score=0,
            excerpt="Blog post generation failed. Please try again.",
        )

    @classmethod
    def from_dict(cls, data: dict) -> GeneratedArticle:
        return cls(
            title=data.get("title", ""),
            content=data.get("content", ""),
            meta_description=data.get("meta_description", ""),
            tags=list(data.get("tags") or []),
            seo_score=data.get("seo_score", 75),
            excerpt=data.get("excerpt", ""),
        )


@dataclass
class ImageResult:
    image_url: str
    prompt: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: dict) -> ImageResult:
        return cls(
            image_url=data["image_url"],
            prompt=data.get("prompt", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class ArticleRequest:
    """Inputs for the writing step."""

    analysis: ResearchResult
    topic: str
    word_count: int = 800
    tone: str = "conversational"
    target_audience: str = "general audience"
    custom_prompt: str | None = None
    template_id: str | None = None
