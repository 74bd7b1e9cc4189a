"""Content pipeline: sources to research, article, image and published post."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from wordposty.backends.base import ResearchBackend, WriterBackend, count_words
from wordposty.backends.claude import ClaudeBackend
from wordposty.backends.imagen import ImagenBackend
from wordposty.backends.perplexity import PerplexityBackend
from wordposty.backends.wordpress import WordPressClient, merge_tags
from wordposty.errors import APIError, ValidationError
from wordposty.models.article import ArticleRequest, GeneratedArticle, ImageResult
from wordposty.models.publish import PublishOptions, PublishResult, SiteCredentials
from wordposty.models.research import ResearchResult
from wordposty.models.source import SourceInput, SourceProcessingResult
from wordposty.models.workflow import Workflow, WorkflowStatus
from wordposty.orchestrator.rate_limiter import RateLimiter, with_rate_limit
from wordposty.orchestrator.sources import SourceManager

logger = logging.getLogger(__name__)

MIN_ARTICLE_WORDS = 200

UpdateCallback = Callable[[dict], Awaitable[None]]


@dataclass
class AnalysisOutcome:
    processing: SourceProcessingResult
    summary: dict
    analysis: ResearchResult
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "source_processing": {
                "success": self.processing.success,
                "processed_sources": len(self.processing.sources),
                "total_word_count": self.processing.total_word_count,
                "summary": self.summary,
                "errors": self.processing.errors,
            },
            "analysis": dataclasses.asdict(self.analysis),
            "metadata": self.metadata,
        }


def validate_article(article: GeneratedArticle) -> None:
    if not article.title or not article.content:
        raise APIError("Generated article is missing title or content", 502, "writer")
    words = count_words(article.content)
    if words < MIN_ARTICLE_WORDS:
        raise APIError(
            f"Generated article is too short ({words} words)", 502, "writer"
        )


async def _noop(message: dict) -> None:
    return None


class Pipeline:
    """Runs each stage against its service, throttled per client."""

    def __init__(
        self,
        sources: SourceManager | None = None,
        research: ResearchBackend | None = None,
        writer: WriterBackend | None = None,
        imagen: ImagenBackend | None = None,
        limiter: RateLimiter | None = None,
        wordpress: Callable[[SiteCredentials | None], WordPressClient] = WordPressClient,
    ) -> None:
        self.sources = sources or SourceManager()
        self.research = research or PerplexityBackend()
        self.writer = writer or ClaudeBackend()
        self.imagen = imagen or ImagenBackend()
        self.limiter = limiter or RateLimiter()
        self.wordpress = wordpress

    # -- Research --

    async def analyze(
        self,
        inputs: list[SourceInput],
        topic: str,
        target_audience: str | None = None,
        identifier: str = "unknown",
    ) -> AnalysisOutcome:
        if not inputs:
            raise ValidationError("Sources array is required and cannot be empty", "sources")
        if not topic or not topic.strip():
            raise ValidationError("Topic is required and cannot be empty", "topic")

        async def run() -> AnalysisOutcome:
            processing = await self.sources.process_sources(inputs)
            if not processing.success:
                raise ValidationError(
                    f"Source processing failed: {'; '.join(processing.errors)}", "sources"
                )

            valid, errors = self.sources.validate_for_analysis(processing.sources)
            if not valid:
                raise ValidationError(f"Source validation failed: {'; '.join(errors)}", "sources")

            analysis = await self.research.analyze_sources(
                topic,
                self.sources.format_for_prompt(processing.sources),
                target_audience,
            )
            return AnalysisOutcome(
                processing=processing,
                summary=self.sources.summarize(processing.sources),
                analysis=analysis,
                metadata={
                    "topic": topic,
                    "target_audience": target_audience,
                    "processed_at": datetime.now(timezone.utc).isoformat(),
                },
            )

        return await with_rate_limit(self.limiter, "research", identifier, run)

    # -- Writing --

    async def generate(self, request: ArticleRequest, identifier: str = "unknown") -> GeneratedArticle:
        if not request.topic or not request.topic.strip():
            raise ValidationError("Topic is required", "topic")

        async def run() -> GeneratedArticle:
            article = await self.writer.generate_article(request)
            validate_article(article)
            return article

        article = await with_rate_limit(self.limiter, "writer", identifier, run)
        logger.info("Generated article %r (%d words)", article.title, count_words(article.content))
        return article

    async def generate_image(
        self,
        article: GeneratedArticle,
        analysis: ResearchResult | None = None,
        custom_prompt: str | None = None,
        use_smart_prompt: bool = False,
        identifier: str = "unknown",
    ) -> ImageResult:
        return await with_rate_limit(
            self.limiter,
            "imagen",
            identifier,
            lambda: self.imagen.generate_image(article, analysis, custom_prompt, use_smart_prompt),
        )

    # -- Publishing --

    async def publish(
        self,
        article: GeneratedArticle,
        options: PublishOptions | None = None,
        credentials: SiteCredentials | None = None,
        identifier: str = "unknown",
    ) -> PublishResult:
        """Publish *article*, merging its tags and SEO fields into *options*."""
        options = options or PublishOptions()
        options = dataclasses.replace(
            options,
            tags=merge_tags(options.tags, article.tags),
            seo_title=options.seo_title or article.title,
            seo_description=options.seo_description or article.meta_description,
        )

        client = self.wordpress(credentials)

        async def run() -> PublishResult:
            connection = await client.test_connection()
            if not connection.success:
                raise APIError(
                    f"WordPress connection failed: {connection.error}", 502, "wordpress"
                )
            return await client.publish_post(article, options)

        result = await with_rate_limit(self.limiter, "wordpress", identifier, run)
        if result.success:
            logger.info("Published %r to %s", article.title, result.url)
        return result

    # -- Whole workflow --

    async def run_workflow(
        self,
        workflow: Workflow,
        identifier: str = "unknown",
        on_update: UpdateCallback | None = None,
    ) -> Workflow:
        """Run research then writing on *workflow*, reporting each transition.

        Stage failures are recorded on the workflow rather than raised. The
        workflow may arrive already in the analyzing state when the caller
        claimed it before handing it over.
        """
        notify = on_update or _noop

        if workflow.status != WorkflowStatus.ANALYZING:
            workflow.begin_analysis()
        await notify(_status(workflow, "analyzing"))
        await self.analyze_workflow(workflow, identifier)
        await notify(_status(workflow, "analyzed" if workflow.analysis else "failed"))
        if workflow.analysis is None:
            return workflow

        workflow.begin_generation()
        await notify(_status(workflow, "generating"))
        await self.generate_workflow(workflow, identifier)
        await notify(_status(workflow, "completed" if workflow.article else "failed"))
        return workflow

    async def analyze_workflow(self, workflow: Workflow, identifier: str = "unknown") -> None:
        if workflow.status != WorkflowStatus.ANALYZING:
            workflow.begin_analysis()
        inputs = workflow.inputs
        try:
            outcome = await self.analyze(
                inputs.sources, inputs.topic, inputs.target_audience, identifier
            )
        except APIError as exc:
            logger.warning("Workflow %s analysis failed: %s", workflow.id, exc.message)
            workflow.fail_analysis(exc.message)
            return
        workflow.complete_analysis(outcome.analysis)

    async def generate_workflow(self, workflow: Workflow, identifier: str = "unknown") -> None:
        if workflow.status != WorkflowStatus.GENERATING:
            workflow.begin_generation()
        inputs = workflow.inputs
        request = ArticleRequest(
            analysis=workflow.analysis,
            topic=inputs.topic,
            word_count=inputs.word_count,
            tone=inputs.tone,
            target_audience=inputs.target_audience,
            custom_prompt=inputs.custom_prompt or None,
            template_id=inputs.template_id,
        )
        try:
            article = await self.generate(request, identifier)
        except APIError as exc:
            logger.warning("Workflow %s generation failed: %s", workflow.id, exc.message)
            workflow.fail_generation(exc.message)
            return
        workflow.complete_generation(article)


def _status(workflow: Workflow, stage: str) -> dict:
    return {
        "type": "status",
        "stage": stage,
        "workflow_id": workflow.id,
        "summary": workflow.summary(),
    }
