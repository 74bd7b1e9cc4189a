"""Prompt templates for the writing step."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import date

from wordposty.errors import ValidationError
from wordposty.models.research import ResearchResult

CATEGORIES = ("style", "industry", "format", "custom")

VARIABLES = (
    "topic",
    "sources",
    "audience",
    "word_count",
    "tone",
    "key_insights",
    "seo_keywords",
    "current_trends",
    "citations",
    "current_date",
)

PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass
class PromptTemplate:
    id: str
    name: str
    description: str
    template: str
    variables: list[str] = field(default_factory=list)
    category: str = "custom"


PROMPT_TEMPLATES = [
    PromptTemplate(
        id="conversational",
        name="Conversational & Friendly",
        description="Experienced blogger with a casual, engaging voice",
        category="style",
        variables=[
            "topic", "audience", "word_count", "tone", "key_insights",
            "seo_keywords", "current_trends", "citations", "current_date",
        ],
        template="""\
Write as a seasoned blogger talking to a friend over coffee.

RESEARCH:
- Key insights: {key_insights}
- Current trends: {current_trends}
- SEO keywords: {seo_keywords}
- Citations available: {citations}

PREFERENCES:
- Topic: {topic}
- Length: about {word_count} words
- Tone: {tone}
- Audience: {audience}
- Date: {current_date}

Write a blog post about "{topic}" that feels personal. Use contractions, \
rhetorical questions and varied sentence length. Back up the story with two \
or three attributed data points from the research, work the keywords in \
naturally, and close with a call to action.""",
    ),
    PromptTemplate(
        id="professional",
        name="Professional & Authoritative",
        description="Industry expert voice with a professional tone",
        category="style",
        variables=[
            "topic", "audience", "word_count", "key_insights", "seo_keywords",
            "current_trends", "citations", "current_date",
        ],
        template="""\
Write as a recognized expert in {topic}.

RESEARCH:
- Key insights: {key_insights}
- Industry trends: {current_trends}
- SEO focus: {seo_keywords}
- Supporting data: {citations}

ARTICLE:
- Topic: {topic}
- Length: {word_count} words
- Audience: {audience}
- Date: {current_date}

Open with a strong statistic, organize the piece under clear headings, \
reference current developments and finish with concrete recommendations.""",
    ),
    PromptTemplate(
        id="tutorial",
        name="Step-by-Step Tutorial",
        description="Educational guide with clear instructions",
        category="format",
        variables=["topic", "audience", "word_count", "key_insights", "seo_keywords", "current_date"],
        template="""\
Write a step-by-step tutorial on {topic} for {audience}.

- Length: {word_count} words
- Key concepts: {key_insights}
- Search terms: {seo_keywords}
- Date: {current_date}

Cover what the reader will learn, prerequisites, numbered steps, common \
pitfalls and next steps.""",
    ),
    PromptTemplate(
        id="listicle",
        name="Engaging Listicle",
        description="Scannable numbered list article",
        category="format",
        variables=[
            "topic", "audience", "word_count", "key_insights", "seo_keywords",
            "current_trends", "current_date",
        ],
        template="""\
Write a numbered list article about {topic} for {audience}.

- Length: {word_count} words
- Insights to draw from: {key_insights}
- Trends to mention: {current_trends}
- Keywords: {seo_keywords}
- Date: {current_date}

Give every item a punchy heading and a short explanation with one \
practical takeaway.""",
    ),
    PromptTemplate(
        id="technical",
        name="Technical Deep-Dive",
        description="Detailed analysis for practitioners",
        category="industry",
        variables=["topic", "word_count", "key_insights", "seo_keywords", "citations", "current_date"],
        template="""\
Write a technical deep-dive on {topic} for practitioners.

- Length: {word_count} words
- Findings: {key_insights}
- Keywords: {seo_keywords}
- References: {citations}
- Date: {current_date}

Explain how things work, compare approaches, discuss trade-offs and cite \
the references where claims depend on them.""",
    ),
    PromptTemplate(
        id="storytelling",
        name="Narrative Storytelling",
        description="Story-driven article built around a narrative arc",
        category="style",
        variables=["topic", "audience", "word_count", "key_insights", "current_date"],
        template="""\
Tell the story of {topic} for {audience}.

- Length: {word_count} words
- Facts to weave in: {key_insights}
- Date: {current_date}

Build a narrative arc with a relatable character, tension and resolution, \
and let the facts carry the lesson.""",
    ),
]


class PromptTemplateManager:
    """Registry of built-in and user templates."""

    def __init__(self, templates: list[PromptTemplate] | None = None) -> None:
        self._templates: dict[str, PromptTemplate] = {}
        for template in templates if templates is not None else PROMPT_TEMPLATES:
            self._templates[template.id] = template

    def get(self, template_id: str) -> PromptTemplate | None:
        return self._templates.get(template_id)

    def all(self) -> list[PromptTemplate]:
        return list(self._templates.values())

    def by_category(self, category: str) -> list[PromptTemplate]:
        return [t for t in self._templates.values() if t.category == category]

    def add_custom(
        self,
        template: str,
        name: str = "Custom",
        description: str = "User custom prompt",
        template_id: str | None = None,
    ) -> str:
        template_id = template_id or f"custom_{int(time.time() * 1000)}"
        self._templates[template_id] = PromptTemplate(
            id=template_id,
            name=name,
            description=description,
            template=template,
            variables=sorted(set(PLACEHOLDER.findall(template)) & set(VARIABLES)),
            category="custom",
        )
        return template_id

    def render(self, template_id: str, variables: dict) -> str:
        template = self.get(template_id)
        if template is None:
            raise ValidationError(f"Template not found: {template_id}", "template_id")
        return render_text(template.template, variables)

    def prepare_variables(
        self,
        analysis: ResearchResult,
        topic: str,
        word_count: int,
        tone: str,
        audience: str,
        today: date | None = None,
    ) -> dict:
        today = today or date.today()
        return {
            "topic": topic,
            "sources": "Analyzed source content",
            "audience": audience,
            "word_count": word_count,
            "tone": tone,
            "key_insights": "; ".join(analysis.key_insights),
            "seo_keywords": ", ".join(analysis.seo_keywords),
            "current_trends": "; ".join(analysis.current_trends),
            "citations": "; ".join(analysis.citations),
            "current_date": f"{today:%A, %B} {today.day}, {today.year}",
        }

    def validate(self, template: str) -> list[str]:
        """Return a list of problems; empty when the template is usable."""
        errors: list[str] = []
        if template.count("{") != template.count("}"):
            errors.append("Mismatched braces in template")
        for name in PLACEHOLDER.findall(template):
            if name not in VARIABLES:
                errors.append(f"Unknown variable: {{{name}}}")
        return errors


def render_text(text: str, variables: dict) -> str:
    """Replace every ``{name}`` placeholder; unknown placeholders are left alone."""
    rendered = text
    for key, value in variables.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value)
        rendered = rendered.replace(f"{{{key}}}", "" if value is None else str(value))
    return rendered


template_manager = PromptTemplateManager()
