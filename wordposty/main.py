"""WordPosty — FastAPI application entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wordposty import dependencies
from wordposty.config import settings
from wordposty.errors import (
    APIError,
    ValidationError,
    error_response,
    log_error,
    translate_error,
)
from wordposty.orchestrator.rate_limiter import run_cleanup
from wordposty.routers import content, generation, wordpress, workflows

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await dependencies.db.connect()
    cleanup = asyncio.create_task(
        run_cleanup(dependencies.limiter, settings.rate_limit_cleanup_seconds)
    )
    yield
    cleanup.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await cleanup
    await dependencies.db.close()


app = FastAPI(
    title="WordPosty",
    description="Research, write, illustrate and publish blog posts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(content.router)
app.include_router(generation.router)
app.include_router(wordpress.router)
app.include_router(workflows.router)


# --- Errors ---


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    log_error(exc, {"endpoint": request.url.path, "method": request.method})
    headers = {}
    retry_after = getattr(exc, "retry_after", None)
    if retry_after:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(error_response(exc), status_code=exc.status_code, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
    error = ValidationError(first.get("msg", "Invalid request"), field)
    log_error(error, {"endpoint": request.url.path})
    return JSONResponse(error_response(error), status_code=error.status_code)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    error = translate_error(exc, "server")
    return JSONResponse(error_response(error), status_code=error.status_code)


# --- Routes ---


@app.get("/health")
async def health():
    return {"status": "ok"}


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("wordposty.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
