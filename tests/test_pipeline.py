"""Tests for the content pipeline."""

import asyncio
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from wordposty.backends.perplexity import PerplexityBackend
from wordposty.errors import APIError, RateLimitError, ValidationError
from wordposty.models.article import ArticleRequest, GeneratedArticle, ImageResult
from wordposty.models.publish import ConnectionResult, PublishOptions, PublishResult
from wordposty.models.research import ResearchResult
from wordposty.models.source import SourceInput, SourceType
from wordposty.models.workflow import Workflow, WorkflowStatus
from wordposty.orchestrator.pipeline import Pipeline, validate_article
from wordposty.orchestrator.rate_limiter import RateLimitConfig, RateLimiter
from wordposty.orchestrator.sources import SourceManager

LONG_TEXT = " ".join(["Distributed teams need clear written communication."] * 20)
ANALYSIS = ResearchResult(key_insights=["Write things down"], seo_keywords=["remote"])


def _article(words: int = 250, **kwargs) -> GeneratedArticle:
    return GeneratedArticle(
        title=kwargs.pop("title", "Remote Work"),
        content="<p>" + "word " * words + "</p>",
        meta_description="About remote work",
        tags=kwargs.pop("tags", ["remote"]),
    )


def _reader():
    reader = Mock()
    reader.configured = False
    return reader


@pytest.fixture
def pipeline():
    research = Mock()
    research.analyze_sources = AsyncMock(return_value=ANALYSIS)
    writer = Mock()
    writer.generate_article = AsyncMock(return_value=_article())
    imagen = Mock()
    imagen.generate_image = AsyncMock(
        return_value=ImageResult(image_url="data:image/jpeg;base64,AA==", prompt="p", timestamp="t")
    )
    return Pipeline(
        sources=SourceManager(reader=_reader()),
        research=research,
        writer=writer,
        imagen=imagen,
        limiter=RateLimiter(configs={}),
    )


def _text(content: str = LONG_TEXT) -> list[SourceInput]:
    return [SourceInput(id="s1", type=SourceType.TEXT, content=content)]


class TestValidateArticle:
    def test_accepts_long_article(self):
        validate_article(_article(250))

    def test_rejects_short_article(self):
        with pytest.raises(APIError) as exc_info:
            validate_article(_article(50))
        assert exc_info.value.service == "writer"

    def test_rejects_missing_title(self):
        with pytest.raises(APIError):
            validate_article(_article(title=""))


class TestAnalyze:
    def test_outcome(self, pipeline):
        outcome = asyncio.run(pipeline.analyze(_text(), "Remote work", "managers", "1.2.3.4"))

        assert outcome.analysis == ANALYSIS
        assert outcome.summary["total_sources"] == 1
        assert outcome.metadata["topic"] == "Remote work"
        topic, formatted, audience = pipeline.research.analyze_sources.call_args.args
        assert formatted.startswith("## Source 1: ")
        assert audience == "managers"

        data = outcome.to_dict()
        assert data["source_processing"]["processed_sources"] == 1
        assert data["analysis"]["key_insights"] == ["Write things down"]

    @pytest.mark.parametrize("inputs, topic", [([], "Topic"), (_text(), "  ")])
    def test_missing_inputs(self, pipeline, inputs, topic):
        with pytest.raises(ValidationError):
            asyncio.run(pipeline.analyze(inputs, topic))

    def test_too_few_words(self, pipeline):
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(pipeline.analyze(_text("only a few words"), "Topic"))
        assert "Source validation failed" in exc_info.value.message
        pipeline.research.analyze_sources.assert_not_awaited()

    def test_processing_failure(self, pipeline):
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(pipeline.analyze(_text("   "), "Topic"))
        assert "Source processing failed" in exc_info.value.message

    def test_rate_limited_per_client(self, pipeline):
        pipeline.limiter.configs["research"] = RateLimitConfig(1, 60, "research")

        asyncio.run(pipeline.analyze(_text(), "Topic", identifier="a"))
        with pytest.raises(RateLimitError):
            asyncio.run(pipeline.analyze(_text(), "Topic", identifier="a"))
        asyncio.run(pipeline.analyze(_text(), "Topic", identifier="b"))


class TestGenerate:
    def test_returns_validated_article(self, pipeline):
        request = ArticleRequest(analysis=ANALYSIS, topic="Remote work")
        article = asyncio.run(pipeline.generate(request))
        assert article.title == "Remote Work"

    def test_short_article_is_rejected(self, pipeline):
        pipeline.writer.generate_article.return_value = _article(20)
        with pytest.raises(APIError):
            asyncio.run(pipeline.generate(ArticleRequest(analysis=ANALYSIS, topic="Remote work")))

    def test_image(self, pipeline):
        image = asyncio.run(pipeline.generate_image(_article(), ANALYSIS, use_smart_prompt=True))
        assert image.image_url.startswith("data:image/jpeg")
        pipeline.imagen.generate_image.assert_awaited_once_with(_article(), ANALYSIS, None, True)


class TestPublish:
    def _client(self, connected: bool = True):
        client = Mock()
        client.test_connection = AsyncMock(
            return_value=ConnectionResult(success=connected, error=None if connected else "401")
        )
        client.publish_post = AsyncMock(
            return_value=PublishResult(success=True, post={"id": 9}, url="https://b.com/?p=9")
        )
        return client

    def test_merges_tags_and_seo_fields(self, pipeline):
        client = self._client()
        pipeline.wordpress = lambda credentials: client

        result = asyncio.run(
            pipeline.publish(_article(tags=["remote", "teams"]), PublishOptions(tags=["news", "remote"]))
        )

        assert result.post_id == 9
        options = client.publish_post.call_args.args[1]
        assert options.tags == ["news", "remote", "teams"]
        assert options.seo_title == "Remote Work"
        assert options.seo_description == "About remote work"

    def test_caller_options_are_left_untouched(self, pipeline):
        client = self._client()
        pipeline.wordpress = lambda credentials: client
        options = PublishOptions(tags=["news"])

        asyncio.run(pipeline.publish(_article(tags=["teams"]), options))

        assert options.tags == ["news"]
        assert options.seo_title is None
        assert options.seo_description is None
        assert client.publish_post.call_args.args[1] is not options

    def test_failed_connection_stops_publish(self, pipeline):
        client = self._client(connected=False)
        pipeline.wordpress = lambda credentials: client

        with pytest.raises(APIError) as exc_info:
            asyncio.run(pipeline.publish(_article()))

        assert exc_info.value.message == "WordPress connection failed: 401"
        client.publish_post.assert_not_awaited()


class TestRunWorkflow:
    def _workflow(self, content: str = LONG_TEXT) -> Workflow:
        workflow = Workflow()
        workflow.set_inputs(sources=_text(content), topic="Remote work")
        return workflow

    def test_runs_both_stages(self, pipeline):
        updates = []

        async def on_update(message):
            updates.append(message["stage"])

        workflow = asyncio.run(pipeline.run_workflow(self._workflow(), "c", on_update))

        assert workflow.status == WorkflowStatus.COMPLETED
        assert workflow.can_export()
        assert updates == ["analyzing", "analyzed", "generating", "completed"]

    def test_analysis_failure_is_recorded(self, pipeline):
        updates = []

        async def on_update(message):
            updates.append(message["stage"])

        workflow = asyncio.run(pipeline.run_workflow(self._workflow("too short"), "c", on_update))

        assert workflow.status == WorkflowStatus.ERROR
        assert "Source validation failed" in workflow.analysis_error
        assert updates == ["analyzing", "failed"]
        pipeline.writer.generate_article.assert_not_awaited()

    def test_generation_failure_is_recorded(self, pipeline):
        pipeline.writer.generate_article.side_effect = APIError("writer down", 503, "writer")

        workflow = asyncio.run(pipeline.run_workflow(self._workflow()))

        assert workflow.status == WorkflowStatus.ERROR
        assert workflow.generation_error == "writer down"
        assert workflow.analysis == ANALYSIS

    def test_each_update_sees_the_running_status(self, pipeline):
        statuses = []

        async def on_update(message):
            statuses.append((message["stage"], message["summary"]["current_status"]))

        asyncio.run(pipeline.run_workflow(self._workflow(), "c", on_update))

        assert statuses == [
            ("analyzing", "analyzing"),
            ("analyzed", "idle"),
            ("generating", "generating"),
            ("completed", "completed"),
        ]

    def test_accepts_a_workflow_already_analyzing(self, pipeline):
        workflow = self._workflow()
        workflow.begin_analysis()

        workflow = asyncio.run(pipeline.run_workflow(workflow))

        assert workflow.status == WorkflowStatus.COMPLETED
        pipeline.research.analyze_sources.assert_awaited_once()

    def test_stage_methods_accept_begun_state(self, pipeline):
        workflow = self._workflow()
        workflow.begin_analysis()
        asyncio.run(pipeline.analyze_workflow(workflow))
        assert workflow.analysis == ANALYSIS

        workflow.begin_generation()
        asyncio.run(pipeline.generate_workflow(workflow))
        assert workflow.status == WorkflowStatus.COMPLETED

    def test_gateway_page_from_research_is_recorded(self, pipeline):
        pipeline.research = PerplexityBackend(
            api_key="k",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>Bad gateway</html>")
            ),
        )
        workflow = self._workflow()

        asyncio.run(pipeline.analyze_workflow(workflow))

        assert workflow.status == WorkflowStatus.ERROR
        assert workflow.analysis_error == "Invalid JSON response from Perplexity API"
