"""Tests for the aiosqlite persistence layer."""

import asyncio

import pytest

from wordposty.db.database import Database
from wordposty.models.article import GeneratedArticle
from wordposty.models.publish import PublishResult
from wordposty.models.research import ResearchResult
from wordposty.models.source import SourceInput, SourceType
from wordposty.models.workflow import Workflow, WorkflowStatus


def _run(path, steps):
    async def go():
        db = Database(str(path))
        await db.connect()
        try:
            return await steps(db)
        finally:
            await db.close()

    return asyncio.run(go())


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "wordposty.db"


class TestWorkflows:
    def test_create_and_get(self, db_path):
        async def steps(db):
            workflow = Workflow()
            workflow.set_inputs(
                sources=[SourceInput(id="s1", type=SourceType.URL, content="https://e.com")],
                topic="Remote work",
                word_count=1200,
            )
            await db.create_workflow(workflow)
            return workflow, await db.get_workflow(workflow.id)

        created, loaded = _run(db_path, steps)

        assert loaded.id == created.id
        assert loaded.inputs.topic == "Remote work"
        assert loaded.inputs.word_count == 1200
        assert loaded.inputs.sources[0].content == "https://e.com"

    def test_save_persists_results(self, db_path):
        async def steps(db):
            workflow = await db.create_workflow()
            workflow.set_inputs(
                sources=[SourceInput(id="s1", type=SourceType.TEXT, content="x")], topic="T"
            )
            workflow.begin_analysis()
            workflow.complete_analysis(ResearchResult(key_insights=["i"]))
            workflow.begin_generation()
            workflow.complete_generation(
                GeneratedArticle(title="T", content="<p>c</p>", meta_description="m")
            )
            await db.save_workflow(workflow)
            return await db.get_workflow(workflow.id)

        loaded = _run(db_path, steps)

        assert loaded.status == WorkflowStatus.COMPLETED
        assert loaded.analysis.key_insights == ["i"]
        assert loaded.article.title == "T"
        assert loaded.can_export()

    def test_missing_workflow(self, db_path):
        async def steps(db):
            return await db.get_workflow("nope"), await db.delete_workflow("nope")

        assert _run(db_path, steps) == (None, False)

    def test_list_most_recent_first(self, db_path):
        async def steps(db):
            first = await db.create_workflow()
            second = await db.create_workflow()
            first.set_inputs(topic="touched later")
            await db.save_workflow(first)
            return first, second, await db.list_workflows()

        first, second, listed = _run(db_path, steps)

        assert [w.id for w in listed] == [first.id, second.id]

    def test_delete_cascades_publications(self, db_path):
        async def steps(db):
            workflow = await db.create_workflow()
            await db.add_publication(
                workflow.id, "https://blog.example.com", PublishResult(success=True, post={"id": 1})
            )
            deleted = await db.delete_workflow(workflow.id)
            return deleted, await db.get_publications(workflow.id)

        assert _run(db_path, steps) == (True, [])


class TestPublications:
    def test_add_and_list(self, db_path):
        async def steps(db):
            workflow = await db.create_workflow()
            result = PublishResult(
                success=True,
                post={"id": 42, "status": "draft"},
                url="https://blog.example.com/?p=42",
                warnings=["Failed to upload featured image"],
            )
            publication_id = await db.add_publication(workflow.id, "https://blog.example.com", result)
            return publication_id, await db.get_publications(workflow.id)

        publication_id, publications = _run(db_path, steps)

        assert len(publications) == 1
        publication = publications[0]
        assert publication["id"] == publication_id
        assert publication["post_id"] == 42
        assert publication["status"] == "draft"
        assert publication["warnings"] == ["Failed to upload featured image"]
