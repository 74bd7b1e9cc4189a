"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

import base64
import binascii
from typing import Literal

from pydantic import BaseModel, Field

from wordposty.errors import ValidationError
from wordposty.models.article import ArticleRequest, GeneratedArticle
from wordposty.models.publish import PostStatus, PublishOptions, SiteCredentials
from wordposty.models.research import ResearchResult
from wordposty.models.source import SourceInput, SourceType

MAX_SOURCES = 10


class SourceInputModel(BaseModel):
    id: str
    type: Literal["text", "url", "file"]
    content: str
    data: str | None = Field(None, description="Base64 file bytes for file sources")
    content_type: str | None = None

    def to_input(self) -> SourceInput:
        data = None
        if self.data is not None:
            try:
                data = base64.b64decode(self.data, validate=True)
            except binascii.Error as exc:
                raise ValidationError("File data must be base64 encoded", "data") from exc
        return SourceInput(
            id=self.id,
            type=SourceType(self.type),
            content=self.content,
            data=data,
            content_type=self.content_type,
        )


def source_inputs(models: list[SourceInputModel]) -> list[SourceInput]:
    if not models:
        raise ValidationError("Sources array is required and cannot be empty", "sources")
    if len(models) > MAX_SOURCES:
        raise ValidationError(f"At most {MAX_SOURCES} sources are allowed", "sources")
    return [m.to_input() for m in models]


class ProcessSourcesRequest(BaseModel):
    sources: list[SourceInputModel] = []


class AnalyzeRequest(BaseModel):
    sources: list[SourceInputModel] = []
    topic: str = ""
    target_audience: str | None = None


class AnalysisModel(BaseModel):
    key_insights: list[str] = []
    main_themes: list[str] = []
    current_trends: list[str] = []
    seo_keywords: list[str] = []
    factual_claims: list[str] = []
    citations: list[str] = []

    def to_result(self) -> ResearchResult:
        return ResearchResult(**self.model_dump())


class ArticleModel(BaseModel):
    title: str
    content: str
    meta_description: str = ""
    tags: list[str] = []
    seo_score: int = 75
    excerpt: str = ""

    def to_article(self) -> GeneratedArticle:
        return GeneratedArticle(**self.model_dump())


class GenerateRequest(BaseModel):
    analysis: AnalysisModel | None = None
    topic: str = ""
    word_count: int = Field(800, ge=100, le=5000)
    tone: str = "conversational"
    target_audience: str = "general audience"
    custom_prompt: str | None = None
    template_id: str | None = None

    def to_request(self) -> ArticleRequest:
        if self.analysis is None:
            raise ValidationError("Analysis is required", "analysis")
        if not self.topic.strip():
            raise ValidationError("Topic is required", "topic")
        return ArticleRequest(
            analysis=self.analysis.to_result(),
            topic=self.topic.strip(),
            word_count=self.word_count,
            tone=self.tone,
            target_audience=self.target_audience,
            custom_prompt=self.custom_prompt,
            template_id=self.template_id,
        )


class ValidateTemplateRequest(BaseModel):
    template: str


class ImageRequest(BaseModel):
    article: ArticleModel
    analysis: AnalysisModel | None = None
    custom_prompt: str | None = None
    use_smart_prompt: bool = False


class SEOAnalyzeRequest(BaseModel):
    keyword: str = ""
    max_results: int = Field(15, ge=1, le=30)


class JinaRequest(BaseModel):
    url: str = ""


class CredentialsModel(BaseModel):
    url: str = ""
    username: str = ""
    password: str = ""

    def to_credentials(self) -> SiteCredentials:
        credentials = SiteCredentials(url=self.url, username=self.username, password=self.password)
        if not credentials.complete:
            raise ValidationError(
                "Complete WordPress credentials required (url, username, password)", "credentials"
            )
        return credentials


class ConnectSiteRequest(BaseModel):
    credentials: CredentialsModel


class PublishOptionsModel(BaseModel):
    status: PostStatus = PostStatus.DRAFT
    scheduled_date: str | None = None
    categories: list[str] = []
    tags: list[str] = []
    featured_image_url: str | None = None
    allow_comments: bool = True
    seo_title: str | None = None
    seo_description: str | None = None

    def to_options(self) -> PublishOptions:
        if self.status == PostStatus.FUTURE and not self.scheduled_date:
            raise ValidationError("Scheduled posts need a scheduled_date", "scheduled_date")
        return PublishOptions(**self.model_dump())


class PublishRequest(BaseModel):
    article: ArticleModel
    options: PublishOptionsModel = PublishOptionsModel()
    credentials: CredentialsModel | None = None

    def site(self) -> SiteCredentials | None:
        return self.credentials.to_credentials() if self.credentials else None


class WorkflowInputsModel(BaseModel):
    sources: list[SourceInputModel] | None = None
    topic: str | None = None
    word_count: int | None = Field(None, ge=100, le=5000)
    tone: str | None = None
    target_audience: str | None = None
    custom_prompt: str | None = None
    template_id: str | None = None

    def to_fields(self) -> dict:
        fields = {
            name: value
            for name, value in self.model_dump(exclude_unset=True, exclude={"sources"}).items()
            if value is not None
        }
        if self.sources is not None:
            inputs = source_inputs(self.sources)
            if any(s.type == SourceType.FILE for s in inputs):
                raise ValidationError(
                    "Workflows take text and URL sources; upload files through /api/upload first",
                    "sources",
                )
            fields["sources"] = inputs
        return fields


class WorkflowImageRequest(BaseModel):
    custom_prompt: str | None = None
    use_smart_prompt: bool = False


class WorkflowPublishRequest(BaseModel):
    options: PublishOptionsModel = PublishOptionsModel()
    credentials: CredentialsModel | None = None
