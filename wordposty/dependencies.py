"""Shared service instances and FastAPI dependency providers."""

from __future__ import annotations

from fastapi import Request

from wordposty.backends.claude import ClaudeBackend
from wordposty.backends.imagen import ImagenBackend
from wordposty.backends.jina import JinaReader
from wordposty.backends.perplexity import PerplexityBackend
from wordposty.config import settings
from wordposty.db.database import Database
from wordposty.orchestrator.files import FileProcessor
from wordposty.orchestrator.pipeline import Pipeline
from wordposty.orchestrator.prompts import PromptTemplateManager, template_manager
from wordposty.orchestrator.rate_limiter import RateLimiter
from wordposty.orchestrator.seo import SEOAnalyzer
from wordposty.orchestrator.sources import SourceManager

db = Database(settings.database_path)
limiter = RateLimiter()
reader = JinaReader()
research = PerplexityBackend()
writer = ClaudeBackend(templates=template_manager)
imagen = ImagenBackend()


def get_db() -> Database:
    return db


def get_limiter() -> RateLimiter:
    return limiter


def get_templates() -> PromptTemplateManager:
    return template_manager


def get_reader() -> JinaReader:
    return reader


def get_file_processor() -> FileProcessor:
    return FileProcessor(reader)


def get_source_manager() -> SourceManager:
    return SourceManager(files=get_file_processor(), reader=reader)


def get_pipeline() -> Pipeline:
    return Pipeline(
        sources=get_source_manager(),
        research=research,
        writer=writer,
        imagen=imagen,
        limiter=limiter,
    )


def get_seo_analyzer() -> SEOAnalyzer:
    return SEOAnalyzer(research)


def client_id(request: Request) -> str:
    """Identify the caller for rate limiting."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
