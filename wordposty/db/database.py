"""SQLite database layer via aiosqlite."""

from __future__ import annotations

import json
import uuid

import aiosqlite

from wordposty.models.publish import PublishResult
from wordposty.models.workflow import Workflow

SCHEMA = """
CREATE TABLE IF NOT EXISTS workflows (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    current_step TEXT NOT NULL,
    progress INTEGER NOT NULL DEFAULT 0,
    inputs_json TEXT NOT NULL DEFAULT '{}',
    analysis_json TEXT,
    analysis_error TEXT,
    article_json TEXT,
    generation_error TEXT,
    image_json TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS publications (
    id TEXT PRIMARY KEY,
    workflow_id TEXT NOT NULL REFERENCES workflows(id) ON DELETE CASCADE,
    site_url TEXT NOT NULL,
    post_id INTEGER,
    url TEXT,
    status TEXT,
    warnings_json TEXT NOT NULL DEFAULT '[]',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


def _dump(value) -> str | None:
    return json.dumps(value) if value is not None else None


def _load(value: str | None):
    return json.loads(value) if value else None


class Database:
    """Async SQLite database for wizard workflows and their publications."""

    def __init__(self, path: str = "wordposty.db") -> None:
        self.path = path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self._db = await aiosqlite.connect(self.path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA foreign_keys = ON")
        await self._db.executescript(SCHEMA)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database not connected — call connect() first")
        return self._db

    # -- Workflows --

    async def create_workflow(self, workflow: Workflow | None = None) -> Workflow:
        workflow = workflow or Workflow()
        data = workflow.to_dict()
        await self.db.execute(
            "INSERT INTO workflows (id, status, current_step, progress, inputs_json, "
            "analysis_json, analysis_error, article_json, generation_error, image_json, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                data["id"],
                data["status"],
                data["current_step"],
                data["progress"],
                json.dumps(data["inputs"]),
                _dump(data["analysis"]),
                data["analysis_error"],
                _dump(data["article"]),
                data["generation_error"],
                _dump(data["image"]),
                data["created_at"],
                data["updated_at"],
            ),
        )
        await self.db.commit()
        return workflow

    async def save_workflow(self, workflow: Workflow) -> None:
        data = workflow.to_dict()
        await self.db.execute(
            "UPDATE workflows SET status = ?, current_step = ?, progress = ?, inputs_json = ?, "
            "analysis_json = ?, analysis_error = ?, article_json = ?, generation_error = ?, "
            "image_json = ?, updated_at = ? WHERE id = ?",
            (
                data["status"],
                data["current_step"],
                data["progress"],
                json.dumps(data["inputs"]),
                _dump(data["analysis"]),
                data["analysis_error"],
                _dump(data["article"]),
                data["generation_error"],
                _dump(data["image"]),
                data["updated_at"],
                data["id"],
            ),
        )
        await self.db.commit()

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        cursor = await self.db.execute("SELECT * FROM workflows WHERE id = ?", (workflow_id,))
        row = await cursor.fetchone()
        return self._row_to_workflow(row) if row else None

    async def list_workflows(self, limit: int = 50) -> list[Workflow]:
        cursor = await self.db.execute(
            "SELECT * FROM workflows ORDER BY updated_at DESC LIMIT ?", (limit,)
        )
        rows = await cursor.fetchall()
        return [self._row_to_workflow(r) for r in rows]

    async def delete_workflow(self, workflow_id: str) -> bool:
        cursor = await self.db.execute("DELETE FROM workflows WHERE id = ?", (workflow_id,))
        await self.db.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_workflow(row: aiosqlite.Row) -> Workflow:
        return Workflow.from_dict(
            {
                "id": row["id"],
                "status": row["status"],
                "current_step": row["current_step"],
                "progress": row["progress"],
                "inputs": json.loads(row["inputs_json"]),
                "analysis": _load(row["analysis_json"]),
                "analysis_error": row["analysis_error"],
                "article": _load(row["article_json"]),
                "generation_error": row["generation_error"],
                "image": _load(row["image_json"]),
                "created_at": row["created_at"],
                "updated_at": row["updated_at"],
            }
        )

    # -- Publications --

    async def add_publication(
        self, workflow_id: str, site_url: str, result: PublishResult
    ) -> str:
        publication_id = str(uuid.uuid4())
        status = (result.post or {}).get("status")
        await self.db.execute(
            "INSERT INTO publications (id, workflow_id, site_url, post_id, url, status, warnings_json) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                publication_id,
                workflow_id,
                site_url,
                result.post_id,
                result.url,
                status,
                json.dumps(result.warnings),
            ),
        )
        await self.db.commit()
        return publication_id

    async def get_publications(self, workflow_id: str) -> list[dict]:
        cursor = await self.db.execute(
            "SELECT * FROM publications WHERE workflow_id = ? ORDER BY created_at",
            (workflow_id,),
        )
        rows = await cursor.fetchall()
        publications = []
        for row in rows:
            publication = dict(row)
            publication["warnings"] = json.loads(publication.pop("warnings_json"))
            publications.append(publication)
        return publications
