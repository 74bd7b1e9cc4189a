"""Source intake endpoints: text/URL/file normalization, uploads, reader service."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from wordposty.backends.jina import JinaReader
from wordposty.dependencies import (
    client_id,
    get_file_processor,
    get_limiter,
    get_reader,
    get_source_manager,
)
from wordposty.errors import APIError, ValidationError
from wordposty.models.requests import (
    MAX_SOURCES,
    JinaRequest,
    ProcessSourcesRequest,
    source_inputs,
)
from wordposty.orchestrator.extractor import is_valid_url
from wordposty.orchestrator.files import MAX_FILE_SIZE, FileProcessor, UploadedFile
from wordposty.orchestrator.rate_limiter import RateLimiter, with_rate_limit
from wordposty.orchestrator.sources import (
    MAX_ANALYSIS_WORDS,
    MIN_ANALYSIS_WORDS,
    SourceManager,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sources"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _source_dict(source) -> dict:
    data = dataclasses.asdict(source)
    data["type"] = source.type.value
    return data


@router.get("/sources")
async def source_limits(files: Annotated[FileProcessor, Depends(get_file_processor)]):
    """Supported source types and limits."""
    return {
        "supported_types": ["text", "url", "file"],
        "file_types": {
            "supported": files.supported_extensions(),
            "max_size": f"{files.max_file_size // 1024 // 1024}MB",
        },
        "limits": {
            "max_sources": MAX_SOURCES,
            "max_total_words": MAX_ANALYSIS_WORDS,
            "min_total_words": MIN_ANALYSIS_WORDS,
        },
    }


@router.post("/sources")
async def process_sources(
    req: ProcessSourcesRequest,
    manager: Annotated[SourceManager, Depends(get_source_manager)],
):
    inputs = source_inputs(req.sources)
    logger.info("Processing %d sources", len(inputs))
    result = await manager.process_sources(inputs)
    return {
        "success": result.success,
        "sources": [_source_dict(s) for s in result.sources],
        "summary": manager.summarize(result.sources),
        "errors": result.errors,
        "timestamp": _now(),
    }


@router.get("/upload")
async def upload_info(files: Annotated[FileProcessor, Depends(get_file_processor)]):
    return {
        "supported_extensions": files.supported_extensions(),
        "max_file_size": files.max_file_size,
    }


@router.post("/upload")
async def upload_files(
    files: Annotated[list[UploadFile], File()],
    processor: Annotated[FileProcessor, Depends(get_file_processor)],
):
    """Extract text from uploaded documents; per-file failures are reported, not raised."""
    if not files:
        raise ValidationError("No files provided", "files")

    uploads = [
        UploadedFile(f.filename or "upload", await f.read(), f.content_type) for f in files
    ]
    result = await processor.process_files(uploads)
    return {
        "success": result.success,
        "files": [dataclasses.asdict(f) for f in result.files],
        "errors": result.errors,
        "timestamp": _now(),
    }


@router.post("/jina")
async def read_url(
    req: JinaRequest,
    reader: Annotated[JinaReader, Depends(get_reader)],
    limiter: Annotated[RateLimiter, Depends(get_limiter)],
    identifier: Annotated[str, Depends(client_id)],
):
    url = req.url.strip()
    if not url:
        raise ValidationError("URL is required", "url")
    if not is_valid_url(url):
        raise ValidationError("Invalid URL format", "url")

    extracted = await with_rate_limit(limiter, "jina", identifier, lambda: reader.read_url(url))
    return {"success": True, "data": dataclasses.asdict(extracted), "timestamp": _now()}


@router.post("/jina/pdf")
async def read_pdf(
    file: Annotated[UploadFile, File()],
    reader: Annotated[JinaReader, Depends(get_reader)],
    limiter: Annotated[RateLimiter, Depends(get_limiter)],
    identifier: Annotated[str, Depends(client_id)],
):
    filename = file.filename or "document.pdf"
    if file.content_type != "application/pdf" and not filename.lower().endswith(".pdf"):
        raise ValidationError("Only PDF files are supported", "file")

    data = await file.read()
    if len(data) > MAX_FILE_SIZE:
        raise APIError("File too large. Please try a smaller file.", 413, "jina")

    extracted = await with_rate_limit(
        limiter, "jina", identifier, lambda: reader.read_pdf(filename, data)
    )
    return {"success": True, "data": dataclasses.asdict(extracted), "timestamp": _now()}
