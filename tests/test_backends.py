"""Tests for the research, writing, image and reader backends."""

import asyncio
import json

import httpx
import pytest

from wordposty.backends.base import ResearchBackend, WriterBackend, extract_json
from wordposty.backends.claude import ClaudeBackend
from wordposty.backends.imagen import ImagenBackend
from wordposty.backends.jina import JinaReader
from wordposty.backends.perplexity import PerplexityBackend
from wordposty.errors import APIError, RateLimitError
from wordposty.models.article import ArticleRequest, GeneratedArticle
from wordposty.models.research import ResearchResult

ANALYSIS = {
    "key_insights": ["Insight one", "Insight two"],
    "main_themes": ["Theme"],
    "current_trends": ["Trend"],
    "seo_keywords": ["kw1", "kw2", "kw3", "kw4"],
    "factual_claims": ["Claim"],
    "citations": ["https://example.com"],
}


def _transport(handler, calls=None):
    def wrapped(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return handler(request)

    return httpx.MockTransport(wrapped)


class TestExtractJson:
    def test_strips_markdown_fence(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_finds_object_inside_prose(self):
        assert extract_json('Here you go: {"a": {"b": 2}} cheers') == {"a": {"b": 2}}

    def test_raises_without_object(self):
        with pytest.raises(ValueError):
            extract_json("no json here")


def test_backends_satisfy_protocols():
    assert isinstance(PerplexityBackend(api_key="k"), ResearchBackend)
    assert isinstance(ClaudeBackend(api_key="k"), WriterBackend)


class TestPerplexityBackend:
    def test_analyze_sources_posts_chat_completion(self):
        calls = []
        reply = {"choices": [{"message": {"content": json.dumps(ANALYSIS)}}]}
        backend = PerplexityBackend(
            api_key="pplx-key",
            transport=_transport(lambda r: httpx.Response(200, json=reply), calls),
        )

        result = asyncio.run(backend.analyze_sources("Remote work", "## Source 1", "managers"))

        assert result.key_insights == ["Insight one", "Insight two"]
        body = json.loads(calls[0].content)
        assert calls[0].headers["authorization"] == "Bearer pplx-key"
        assert body["temperature"] == 0.3
        assert body["max_tokens"] == 2000
        assert "Remote work" in body["messages"][1]["content"]
        assert "managers" in body["messages"][1]["content"]

    def test_parse_falls_back_when_insights_not_list(self):
        backend = PerplexityBackend(api_key="k")
        result = backend.parse_response('{"key_insights": "just a string"}')
        assert result == ResearchResult.fallback()

    def test_parse_falls_back_on_garbage(self):
        backend = PerplexityBackend(api_key="k")
        assert backend.parse_response("sorry, I cannot help") == ResearchResult.fallback()

    def test_rate_limited_response_is_translated(self):
        backend = PerplexityBackend(
            api_key="k",
            transport=_transport(lambda r: httpx.Response(429, headers={"retry-after": "7"})),
        )
        with pytest.raises(RateLimitError) as exc_info:
            asyncio.run(backend.complete("system", "prompt"))
        assert exc_info.value.retry_after == 7

    @pytest.mark.parametrize(
        "body", [{"text": "<html>gateway</html>"}, {"json": [1, 2]}]
    )
    def test_malformed_reply_is_an_api_error(self, body):
        backend = PerplexityBackend(
            api_key="k", transport=_transport(lambda r: httpx.Response(200, **body))
        )
        with pytest.raises(APIError) as exc_info:
            asyncio.run(backend.analyze_sources("Remote work", "## Source 1"))
        assert exc_info.value.status_code == 502
        assert exc_info.value.service == "perplexity"

    def test_missing_key_is_an_error(self):
        backend = PerplexityBackend(api_key="k")
        backend.api_key = ""
        with pytest.raises(APIError):
            asyncio.run(backend.complete("system", "prompt"))


class TestClaudeBackend:
    @pytest.fixture
    def request_(self):
        return ArticleRequest(analysis=ResearchResult.from_dict(ANALYSIS), topic="Remote work")

    def test_default_template_and_json_contract(self, request_):
        prompt = ClaudeBackend(api_key="k").build_prompt(request_)

        assert "Insight one" in prompt
        assert "Respond with ONLY valid JSON" in prompt
        assert "approximately 800 words" in prompt

    def test_custom_prompt_with_placeholders_is_rendered(self, request_):
        request_.custom_prompt = "Write about {topic} in {word_count} words"
        prompt = ClaudeBackend(api_key="k").build_prompt(request_)
        assert prompt.startswith("Write about Remote work in 800 words")

    def test_custom_prompt_without_placeholders_used_as_is(self, request_):
        request_.custom_prompt = "Just write something nice"
        prompt = ClaudeBackend(api_key="k").build_prompt(request_)
        assert prompt.startswith("Just write something nice\n\nIMPORTANT")

    def test_selected_template(self, request_):
        request_.template_id = "listicle"
        backend = ClaudeBackend(api_key="k")
        expected = backend.templates.render(
            "listicle",
            backend.templates.prepare_variables(
                request_.analysis, "Remote work", 800, "conversational", "general audience"
            ),
        )
        assert backend.build_prompt(request_).startswith(expected)

    def test_generate_article_joins_text_blocks(self, request_):
        article = {
            "title": "Remote Work",
            "content": "<p>Hello <b>world</b></p>",
            "meta_description": "About remote work",
            "tags": ["remote"],
        }
        text = json.dumps(article)
        reply = {
            "content": [
                {"type": "text", "text": text[:10]},
                {"type": "tool_use", "id": "x"},
                {"type": "text", "text": text[10:]},
            ]
        }
        calls = []
        backend = ClaudeBackend(
            api_key="sk-ant",
            transport=_transport(lambda r: httpx.Response(200, json=reply), calls),
        )

        result = asyncio.run(backend.generate_article(request_))

        assert result.title == "Remote Work"
        assert result.seo_score == 75
        assert result.excerpt == "Hello world..."
        assert calls[0].headers["x-api-key"] == "sk-ant"

    def test_non_json_reply_is_an_api_error(self, request_):
        backend = ClaudeBackend(
            api_key="k",
            transport=_transport(lambda r: httpx.Response(200, text="<html>Bad gateway</html>")),
        )
        with pytest.raises(APIError) as exc_info:
            asyncio.run(backend.generate_article(request_))
        assert exc_info.value.status_code == 502
        assert "Invalid JSON" in exc_info.value.message

    def test_parse_missing_fields_falls_back(self):
        result = ClaudeBackend(api_key="k").parse_article('{"title": "Only title"}')
        assert result == GeneratedArticle.fallback()

    def test_generate_meta_falls_back_on_error(self):
        backend = ClaudeBackend(
            api_key="k", transport=_transport(lambda r: httpx.Response(500, json={}))
        )
        meta = asyncio.run(backend.generate_meta("<p>content</p>", "Title"))
        assert meta == {"meta_description": "Generated blog post content.", "tags": ["blog", "content"]}


class TestImagenBackend:
    @pytest.fixture
    def article(self):
        return GeneratedArticle(title="Remote Work", content="<p>x</p>", meta_description="m")

    def test_smart_prompt_uses_analysis(self, article):
        analysis = ResearchResult.from_dict(ANALYSIS)
        prompt = ImagenBackend(api_key="k").build_prompt(article, analysis)

        assert prompt.startswith('Professional blog header image for: "Remote Work"')
        assert "kw1, kw2, kw3" in prompt
        assert "kw4" not in prompt
        assert "Contemporary style reflecting: Trend" in prompt

    def test_custom_prompt_is_enhanced(self, article):
        prompt = ImagenBackend(api_key="k").build_prompt(article, custom_prompt="A red fox")
        assert prompt == (
            "A red fox. High-quality, professional. 16:9 aspect ratio. Suitable for web blog header"
        )

    def test_enhance_keeps_existing_hints(self):
        prompt = "Professional 16:9 blog photo"
        assert ImagenBackend.enhance_custom_prompt(prompt) == prompt

    def test_generate_returns_data_url(self, article):
        calls = []
        reply = {"predictions": [{"bytesBase64Encoded": "aGVsbG8="}]}
        backend = ImagenBackend(
            api_key="g-key",
            model="imagen-test",
            transport=_transport(lambda r: httpx.Response(200, json=reply), calls),
        )

        image = asyncio.run(backend.generate_image(article))

        assert image.image_url == "data:image/jpeg;base64,aGVsbG8="
        assert calls[0].url.path.endswith("/models/imagen-test:predict")
        body = json.loads(calls[0].content)
        assert body["parameters"]["aspectRatio"] == "16:9"
        assert body["parameters"]["sampleCount"] == 1

    def test_forbidden_has_specific_message(self, article):
        backend = ImagenBackend(
            api_key="k", transport=_transport(lambda r: httpx.Response(403, json={}))
        )
        with pytest.raises(APIError) as exc_info:
            asyncio.run(backend.generate_image(article))
        assert exc_info.value.status_code == 403
        assert "does not have access" in exc_info.value.message

    @pytest.mark.parametrize("reply", [{"predictions": []}, {"predictions": [{}]}])
    def test_missing_image_is_an_error(self, article, reply):
        backend = ImagenBackend(
            api_key="k", transport=_transport(lambda r: httpx.Response(200, json=reply))
        )
        with pytest.raises(APIError):
            asyncio.run(backend.generate_image(article))


class TestJinaReader:
    def test_read_url_from_text_reply(self):
        calls = []
        text = "My Article Title\n\nBody text with several words in it."
        reader = JinaReader(
            api_key="jina",
            transport=_transport(lambda r: httpx.Response(200, text=text), calls),
        )

        extracted = asyncio.run(reader.read_url("https://example.com/post"))

        assert extracted.title == "My Article Title"
        assert extracted.word_count == 10
        assert calls[0].url.host == "r.jina.ai"
        assert str(calls[0].url).endswith("example.com/post")
        assert calls[0].headers["authorization"] == "Bearer jina"

    def test_read_pdf_from_json_reply(self):
        reply = {"data": {"content": "PDF body text", "title": "ignored"}}
        reader = JinaReader(
            api_key="jina", transport=_transport(lambda r: httpx.Response(200, json=reply))
        )

        extracted = asyncio.run(reader.read_pdf("report.pdf", b"%PDF-1.4"))

        assert extracted.title == "report.pdf"
        assert extracted.content == "PDF body text"

    def test_json_reply_with_list_data_is_empty_content(self):
        reader = JinaReader(
            api_key="jina",
            transport=_transport(lambda r: httpx.Response(200, json={"data": ["x"]})),
        )
        with pytest.raises(APIError) as exc_info:
            asyncio.run(reader.read_url("https://example.com"))
        assert exc_info.value.status_code == 422

    def test_empty_content_is_an_error(self):
        reader = JinaReader(
            api_key="jina", transport=_transport(lambda r: httpx.Response(200, text="   "))
        )
        with pytest.raises(APIError) as exc_info:
            asyncio.run(reader.read_url("https://example.com"))
        assert exc_info.value.status_code == 422

    @pytest.mark.parametrize("status, fragment", [(401, "authentication"), (413, "too large")])
    def test_status_messages(self, status, fragment):
        reader = JinaReader(
            api_key="jina", transport=_transport(lambda r: httpx.Response(status))
        )
        with pytest.raises(APIError) as exc_info:
            asyncio.run(reader.read_url("https://example.com"))
        assert exc_info.value.status_code == status
        assert fragment in exc_info.value.message
