"""Tests for prompt templates."""

from datetime import date
from unittest.mock import patch

import pytest

from wordposty.errors import ValidationError
from wordposty.models.research import ResearchResult
from wordposty.orchestrator.prompts import PromptTemplateManager, render_text


@pytest.fixture
def manager():
    return PromptTemplateManager()


@pytest.fixture
def analysis():
    return ResearchResult(
        key_insights=["Remote work is here to stay", "Hybrid beats full remote"],
        seo_keywords=["remote work", "hybrid"],
        current_trends=["Four-day weeks"],
        citations=["https://example.com/study"],
    )


class TestRegistry:
    def test_builtins_present(self, manager):
        ids = {t.id for t in manager.all()}
        assert ids == {
            "conversational",
            "professional",
            "tutorial",
            "listicle",
            "technical",
            "storytelling",
        }

    def test_by_category(self, manager):
        assert all(t.category == "style" for t in manager.by_category("style"))
        assert manager.by_category("custom") == []

    def test_add_custom_generates_id_and_forces_category(self, manager):
        with patch("wordposty.orchestrator.prompts.time.time", return_value=1700000000.123):
            template_id = manager.add_custom("Write about {topic} for {audience}")

        assert template_id == "custom_1700000000123"
        template = manager.get(template_id)
        assert template.category == "custom"
        assert template.variables == ["audience", "topic"]

    def test_add_custom_keeps_given_id(self, manager):
        assert manager.add_custom("Hi {topic}", template_id="mine") == "mine"
        assert manager.get("mine") is not None


class TestRender:
    def test_replaces_every_occurrence(self):
        assert render_text("{topic} and {topic}", {"topic": "AI"}) == "AI and AI"

    def test_joins_lists(self):
        assert render_text("{seo_keywords}", {"seo_keywords": ["a", "b"]}) == "a, b"

    def test_leaves_unknown_placeholders(self):
        assert render_text("{other}", {"topic": "AI"}) == "{other}"

    def test_unknown_template_raises(self, manager):
        with pytest.raises(ValidationError):
            manager.render("missing", {})

    def test_builtin_renders_all_variables(self, manager, analysis):
        variables = manager.prepare_variables(
            analysis, "Remote work", 800, "conversational", "managers", today=date(2026, 3, 5)
        )
        rendered = manager.render("conversational", variables)

        assert "{" not in rendered
        assert "Remote work is here to stay" in rendered


class TestPrepareVariables:
    def test_formats_analysis_fields(self, manager, analysis):
        variables = manager.prepare_variables(
            analysis, "Remote work", 1200, "professional", "managers", today=date(2026, 3, 5)
        )

        assert variables["topic"] == "Remote work"
        assert variables["word_count"] == 1200
        assert variables["key_insights"] == "Remote work is here to stay; Hybrid beats full remote"
        assert variables["seo_keywords"] == "remote work, hybrid"
        assert variables["current_date"] == "Thursday, March 5, 2026"


class TestValidate:
    def test_valid_template(self, manager):
        assert manager.validate("Write {word_count} words on {topic}") == []

    def test_mismatched_braces(self, manager):
        assert "Mismatched braces in template" in manager.validate("Write {topic")

    def test_unknown_variable(self, manager):
        assert manager.validate("Hello {name}") == ["Unknown variable: {name}"]
