"""Wizard workflow state."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from wordposty.errors import WorkflowStateError
from wordposty.models.article import GeneratedArticle, ImageResult
from wordposty.models.research import ResearchResult
from wordposty.models.source import SourceInput, SourceType


class WorkflowStatus(Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class WorkflowStep(Enum):
    SOURCES = "sources"
    ANALYSIS = "analysis"
    GENERATION = "generation"
    COMPLETED = "completed"


STEP_PROGRESS = {
    WorkflowStep.SOURCES: 0,
    WorkflowStep.ANALYSIS: 25,
    WorkflowStep.GENERATION: 75,
    WorkflowStep.COMPLETED: 100,
}

INPUT_FIELDS = (
    "sources",
    "topic",
    "word_count",
    "tone",
    "target_audience",
    "custom_prompt",
    "template_id",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class WorkflowInputs:
    sources: list[SourceInput] = field(default_factory=list)
    topic: str = ""
    word_count: int = 800
    tone: str = "conversational"
    target_audience: str = "general audience"
    custom_prompt: str = ""
    template_id: str | None = None

    def to_dict(self) -> dict:
        data = dataclasses.asdict(self)
        data["sources"] = [
            {"id": s.id, "type": s.type.value, "content": s.content} for s in self.sources
        ]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> WorkflowInputs:
        values = {k: v for k, v in data.items() if k in INPUT_FIELDS}
        values["sources"] = [
            SourceInput(id=s["id"], type=SourceType(s["type"]), content=s["content"])
            for s in data.get("sources", [])
        ]
        return cls(**values)


@dataclass
class Workflow:
    """State of one run through the dashboard wizard.

    Status transitions are guarded so an article is only offered for export
    after both the research and the writing stage completed successfully.
    """

    inputs: WorkflowInputs = field(default_factory=WorkflowInputs)
    status: WorkflowStatus = WorkflowStatus.IDLE
    current_step: WorkflowStep = WorkflowStep.SOURCES
    progress: int = 0
    analysis: ResearchResult | None = None
    analysis_error: str | None = None
    article: GeneratedArticle | None = None
    generation_error: str | None = None
    image: ImageResult | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    # -- Inputs --

    def set_inputs(self, **fields) -> None:
        unknown = set(fields) - set(INPUT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown workflow inputs: {', '.join(sorted(unknown))}")
        if self.status in (WorkflowStatus.ANALYZING, WorkflowStatus.GENERATING):
            raise WorkflowStateError("Cannot change inputs while a stage is running")
        for name, value in fields.items():
            setattr(self.inputs, name, value)
        self._touch()

    def set_step(self, step: WorkflowStep) -> None:
        self.current_step = step
        self.progress = STEP_PROGRESS[step]

    # -- Guards --

    def can_start_analysis(self) -> bool:
        return (
            len(self.inputs.sources) > 0
            and len(self.inputs.topic.strip()) > 0
            and self.status not in (WorkflowStatus.ANALYZING, WorkflowStatus.GENERATING)
        )

    def can_start_generation(self) -> bool:
        return (
            self.analysis is not None
            and self.analysis_error is None
            and self.status != WorkflowStatus.ANALYZING
            and self.status != WorkflowStatus.GENERATING
        )

    def can_export(self) -> bool:
        return (
            self.article is not None
            and self.generation_error is None
            and self.status == WorkflowStatus.COMPLETED
        )

    # -- Research stage --

    def begin_analysis(self) -> None:
        if not self.can_start_analysis():
            raise WorkflowStateError(
                "Analysis needs at least one source, a topic and no stage running"
            )
        self.status = WorkflowStatus.ANALYZING
        self.set_step(WorkflowStep.ANALYSIS)
        self._touch()

    def complete_analysis(self, analysis: ResearchResult) -> None:
        self._expect(WorkflowStatus.ANALYZING)
        self.analysis = analysis
        self.analysis_error = None
        # A fresh analysis invalidates any article written from the old one
        self.article = None
        self.generation_error = None
        self.image = None
        self.status = WorkflowStatus.IDLE
        self._touch()

    def fail_analysis(self, error: str) -> None:
        self._expect(WorkflowStatus.ANALYZING)
        self.analysis = None
        self.analysis_error = error
        self.status = WorkflowStatus.ERROR
        self._touch()

    # -- Writing stage --

    def begin_generation(self) -> None:
        if not self.can_start_generation():
            raise WorkflowStateError("Generation needs a successful analysis first")
        self.status = WorkflowStatus.GENERATING
        self.set_step(WorkflowStep.GENERATION)
        self._touch()

    def complete_generation(self, article: GeneratedArticle) -> None:
        self._expect(WorkflowStatus.GENERATING)
        self.article = article
        self.generation_error = None
        self.image = None
        self.status = WorkflowStatus.COMPLETED
        self.set_step(WorkflowStep.COMPLETED)
        self._touch()

    def fail_generation(self, error: str) -> None:
        self._expect(WorkflowStatus.GENERATING)
        self.article = None
        self.generation_error = error
        self.status = WorkflowStatus.ERROR
        self._touch()

    def attach_image(self, image: ImageResult) -> None:
        if not self.can_export():
            raise WorkflowStateError("Images can only be attached to a completed article")
        self.image = image
        self._touch()

    def reset(self) -> None:
        """Return to the initial state, keeping only the identity."""
        self.inputs = WorkflowInputs()
        self.status = WorkflowStatus.IDLE
        self.set_step(WorkflowStep.SOURCES)
        self.analysis = None
        self.analysis_error = None
        self.article = None
        self.generation_error = None
        self.image = None
        self._touch()

    def summary(self) -> dict:
        return {
            "has_source": len(self.inputs.sources) > 0,
            "has_topic": len(self.inputs.topic.strip()) > 0,
            "has_analysis": self.analysis is not None,
            "has_blog_post": self.article is not None,
            "can_export": self.can_export(),
            "current_status": self.status.value,
            "current_step": self.current_step.value,
            "progress": self.progress,
            "errors": {
                "analysis": self.analysis_error,
                "generation": self.generation_error,
            },
        }

    # -- Serialization --

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "current_step": self.current_step.value,
            "progress": self.progress,
            "inputs": self.inputs.to_dict(),
            "analysis": dataclasses.asdict(self.analysis) if self.analysis else None,
            "analysis_error": self.analysis_error,
            "article": dataclasses.asdict(self.article) if self.article else None,
            "generation_error": self.generation_error,
            "image": dataclasses.asdict(self.image) if self.image else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Workflow:
        return cls(
            id=data["id"],
            status=WorkflowStatus(data["status"]),
            current_step=WorkflowStep(data["current_step"]),
            progress=data["progress"],
            inputs=WorkflowInputs.from_dict(data.get("inputs") or {}),
            analysis=ResearchResult.from_dict(data["analysis"]) if data.get("analysis") else None,
            analysis_error=data.get("analysis_error"),
            article=GeneratedArticle.from_dict(data["article"]) if data.get("article") else None,
            generation_error=data.get("generation_error"),
            image=ImageResult.from_dict(data["image"]) if data.get("image") else None,
            created_at=data.get("created_at") or _now(),
            updated_at=data.get("updated_at") or _now(),
        )

    def _expect(self, status: WorkflowStatus) -> None:
        if self.status != status:
            raise WorkflowStateError(
                f"Workflow is {self.status.value}, expected {status.value}"
            )

    def _touch(self) -> None:
        self.updated_at = _now()
