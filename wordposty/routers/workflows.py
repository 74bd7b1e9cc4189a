"""Wizard workflow endpoints and live status over WebSocket."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Annotated

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from wordposty.config import settings
from wordposty.db.database import Database
from wordposty.dependencies import client_id, get_db, get_pipeline
from wordposty.errors import APIError, WorkflowStateError
from wordposty.models.requests import (
    WorkflowImageRequest,
    WorkflowInputsModel,
    WorkflowPublishRequest,
)
from wordposty.models.workflow import Workflow, WorkflowStatus
from wordposty.orchestrator.pipeline import Pipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["workflows"])

# Active WS connections keyed by workflow_id
_ws_connections: dict[str, list[WebSocket]] = {}

# Background runs, held so they are not garbage collected mid-flight
_tasks: set[asyncio.Task] = set()


async def _load(db: Database, workflow_id: str) -> Workflow:
    workflow = await db.get_workflow(workflow_id)
    if workflow is None:
        raise APIError("Workflow not found", 404, "workflow")
    return workflow


def _state(workflow: Workflow) -> dict:
    return {**workflow.to_dict(), "summary": workflow.summary()}


def _fail_running(workflow: Workflow, error: str) -> None:
    if workflow.status == WorkflowStatus.ANALYZING:
        workflow.fail_analysis(error)
    elif workflow.status == WorkflowStatus.GENERATING:
        workflow.fail_generation(error)


async def _run_stage(db: Database, workflow: Workflow, stage: Awaitable[None]) -> None:
    """Await *stage* and save the workflow, marking it failed if *stage* raised."""
    try:
        await stage
    except Exception as exc:
        logger.exception("Workflow %s stage failed", workflow.id)
        _fail_running(workflow, str(exc))
        raise
    finally:
        await db.save_workflow(workflow)


@router.post("/api/workflows", status_code=201)
async def create_workflow(
    db: Annotated[Database, Depends(get_db)],
    req: WorkflowInputsModel | None = None,
):
    workflow = Workflow()
    if req is not None:
        workflow.set_inputs(**req.to_fields())
    await db.create_workflow(workflow)
    logger.info("Created workflow %s", workflow.id)
    return _state(workflow)


@router.get("/api/workflows")
async def list_workflows(
    db: Annotated[Database, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=200, description="Max results")] = 50,
):
    workflows = await db.list_workflows(limit)
    return {"workflows": [{"id": w.id, **w.summary(), "updated_at": w.updated_at} for w in workflows]}


@router.get("/api/workflows/{workflow_id}")
async def get_workflow(workflow_id: str, db: Annotated[Database, Depends(get_db)]):
    return _state(await _load(db, workflow_id))


@router.patch("/api/workflows/{workflow_id}")
async def update_workflow(
    workflow_id: str,
    req: WorkflowInputsModel,
    db: Annotated[Database, Depends(get_db)],
):
    workflow = await _load(db, workflow_id)
    workflow.set_inputs(**req.to_fields())
    await db.save_workflow(workflow)
    return _state(workflow)


@router.delete("/api/workflows/{workflow_id}", status_code=204)
async def delete_workflow(workflow_id: str, db: Annotated[Database, Depends(get_db)]):
    if not await db.delete_workflow(workflow_id):
        raise APIError("Workflow not found", 404, "workflow")


# -- Stages --


@router.post("/api/workflows/{workflow_id}/analyze")
async def analyze_workflow(
    workflow_id: str,
    db: Annotated[Database, Depends(get_db)],
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
):
    """Run the research stage; a failure is recorded on the workflow."""
    workflow = await _load(db, workflow_id)
    workflow.begin_analysis()
    await db.save_workflow(workflow)
    await _run_stage(db, workflow, pipeline.analyze_workflow(workflow, identifier))
    return _state(workflow)


@router.post("/api/workflows/{workflow_id}/generate")
async def generate_workflow(
    workflow_id: str,
    db: Annotated[Database, Depends(get_db)],
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
):
    workflow = await _load(db, workflow_id)
    workflow.begin_generation()
    await db.save_workflow(workflow)
    await _run_stage(db, workflow, pipeline.generate_workflow(workflow, identifier))
    return _state(workflow)


@router.post("/api/workflows/{workflow_id}/image")
async def image_workflow(
    workflow_id: str,
    db: Annotated[Database, Depends(get_db)],
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
    req: WorkflowImageRequest | None = None,
):
    req = req or WorkflowImageRequest()
    workflow = await _load(db, workflow_id)
    if not workflow.can_export():
        raise WorkflowStateError("Generate an article before creating its image")

    image = await pipeline.generate_image(
        workflow.article, workflow.analysis, req.custom_prompt, req.use_smart_prompt, identifier
    )
    workflow.attach_image(image)
    await db.save_workflow(workflow)
    return _state(workflow)


@router.post("/api/workflows/{workflow_id}/publish")
async def publish_workflow(
    workflow_id: str,
    db: Annotated[Database, Depends(get_db)],
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
    req: WorkflowPublishRequest | None = None,
):
    req = req or WorkflowPublishRequest()
    workflow = await _load(db, workflow_id)
    if not workflow.can_export():
        raise WorkflowStateError("Only a completed article can be published")

    options = req.options.to_options()
    if not options.featured_image_url and workflow.image:
        options.featured_image_url = workflow.image.image_url
    credentials = req.credentials.to_credentials() if req.credentials else None

    result = await pipeline.publish(workflow.article, options, credentials, identifier)
    if not result.success:
        raise APIError(result.error or "Publishing failed", 502, "wordpress")

    site_url = credentials.url if credentials else settings.wordpress_url
    await db.add_publication(workflow.id, site_url, result)
    return {
        "success": True,
        "post_id": result.post_id,
        "url": result.url,
        "warnings": result.warnings,
    }


@router.post("/api/workflows/{workflow_id}/reset")
async def reset_workflow(workflow_id: str, db: Annotated[Database, Depends(get_db)]):
    workflow = await _load(db, workflow_id)
    if workflow.status in (WorkflowStatus.ANALYZING, WorkflowStatus.GENERATING):
        raise WorkflowStateError("Cannot reset while a stage is running")
    workflow.reset()
    await db.save_workflow(workflow)
    return _state(workflow)


@router.post("/api/workflows/{workflow_id}/run", status_code=202)
async def run_workflow(
    workflow_id: str,
    db: Annotated[Database, Depends(get_db)],
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
):
    """Start research and writing in the background.

    Returns immediately. Connect to the WebSocket at /ws/workflows/{workflow_id}
    to follow progress.
    """
    workflow = await _load(db, workflow_id)
    workflow.begin_analysis()
    await db.save_workflow(workflow)

    task = asyncio.create_task(_run_in_background(db, pipeline, workflow, identifier))
    _tasks.add(task)
    task.add_done_callback(_tasks.discard)
    return {"workflow_id": workflow.id, "status": "started"}


@router.get("/api/workflows/{workflow_id}/publications")
async def list_publications(workflow_id: str, db: Annotated[Database, Depends(get_db)]):
    await _load(db, workflow_id)
    return {"publications": await db.get_publications(workflow_id)}


# --- WebSocket ---


@router.websocket("/ws/workflows/{workflow_id}")
async def workflow_ws(websocket: WebSocket, workflow_id: str):
    """Stream status updates for a workflow run."""
    await websocket.accept()
    _ws_connections.setdefault(workflow_id, []).append(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            await websocket.send_json({"type": "ack", "data": data})
    except WebSocketDisconnect:
        _ws_connections.get(workflow_id, []).remove(websocket)


async def broadcast(workflow_id: str, message: dict) -> None:
    """Send a message to all WebSocket clients watching a workflow."""
    for ws in list(_ws_connections.get(workflow_id, [])):
        try:
            await ws.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Dropping WebSocket for %s: %s", workflow_id, exc)
            _ws_connections[workflow_id].remove(ws)


async def _run_in_background(
    db: Database, pipeline: Pipeline, workflow: Workflow, identifier: str
) -> None:
    async def on_update(message: dict) -> None:
        await db.save_workflow(workflow)
        await broadcast(workflow.id, message)

    try:
        await pipeline.run_workflow(workflow, identifier, on_update)
    except Exception as exc:
        logger.exception("Workflow %s run failed", workflow.id)
        _fail_running(workflow, str(exc))
        await db.save_workflow(workflow)
        await broadcast(workflow.id, {"type": "error", "detail": str(exc)[:500]})
        return

    await broadcast(workflow.id, {"type": "done", "workflow": _state(workflow)})
