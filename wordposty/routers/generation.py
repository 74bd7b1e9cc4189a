"""Research, writing, template, image and SEO endpoints."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from wordposty.dependencies import (
    client_id,
    get_limiter,
    get_pipeline,
    get_seo_analyzer,
    get_templates,
)
from wordposty.models.requests import (
    AnalyzeRequest,
    GenerateRequest,
    ImageRequest,
    SEOAnalyzeRequest,
    ValidateTemplateRequest,
    source_inputs,
)
from wordposty.orchestrator.pipeline import Pipeline
from wordposty.orchestrator.prompts import CATEGORIES, VARIABLES, PromptTemplateManager
from wordposty.orchestrator.rate_limiter import RateLimiter, with_rate_limit
from wordposty.orchestrator.seo import SEOAnalyzer, validate_keyword

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generation"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/analyze")
async def analyze(
    req: AnalyzeRequest,
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
):
    """Normalize the sources and run the research analysis."""
    outcome = await pipeline.analyze(
        source_inputs(req.sources), req.topic.strip(), req.target_audience, identifier
    )
    return {"success": True, "analysis": outcome.to_dict(), "timestamp": _now()}


@router.post("/generate")
async def generate(
    req: GenerateRequest,
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
):
    article = await pipeline.generate(req.to_request(), identifier)
    return {"success": True, "blog_post": dataclasses.asdict(article), "timestamp": _now()}


@router.get("/generate")
async def generate_usage():
    return {
        "endpoint": "/api/generate",
        "method": "POST",
        "required_fields": ["analysis", "topic"],
        "optional_fields": [
            "word_count",
            "tone",
            "target_audience",
            "custom_prompt",
            "template_id",
        ],
        "limits": {"min_word_count": 100, "max_word_count": 5000},
    }


# -- Templates --


@router.get("/templates")
async def list_templates(
    templates: Annotated[PromptTemplateManager, Depends(get_templates)],
    category: Annotated[str | None, Query(description="Filter by category")] = None,
):
    found = templates.by_category(category) if category else templates.all()
    return {
        "templates": [dataclasses.asdict(t) for t in found],
        "categories": list(CATEGORIES),
        "variables": list(VARIABLES),
    }


@router.post("/templates/validate")
async def validate_template(
    req: ValidateTemplateRequest,
    templates: Annotated[PromptTemplateManager, Depends(get_templates)],
):
    errors = templates.validate(req.template)
    return {"valid": not errors, "errors": errors}


# -- Images --


@router.post("/imagen/generate")
async def generate_image(
    req: ImageRequest,
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
):
    image = await pipeline.generate_image(
        req.article.to_article(),
        req.analysis.to_result() if req.analysis else None,
        req.custom_prompt,
        req.use_smart_prompt,
        identifier,
    )
    return {"success": True, "image": dataclasses.asdict(image), "timestamp": _now()}


@router.post("/imagen/preview")
async def preview_image_prompt(
    req: ImageRequest,
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
):
    """Show the prompt that would be sent, without generating anything."""
    imagen = pipeline.imagen
    article = req.article.to_article()
    analysis = req.analysis.to_result() if req.analysis else None
    if req.custom_prompt and not req.use_smart_prompt:
        prompt = imagen.enhance_custom_prompt(req.custom_prompt)
    else:
        prompt = imagen.preview_prompt(article, analysis)
    return {"prompt": prompt}


# -- SEO --


@router.post("/seo-analyze")
async def seo_analyze(
    req: SEOAnalyzeRequest,
    analyzer: Annotated[SEOAnalyzer, Depends(get_seo_analyzer)],
    limiter: Annotated[RateLimiter, Depends(get_limiter)],
    identifier: Annotated[str, Depends(client_id)],
):
    keyword = validate_keyword(req.keyword)
    analysis = await with_rate_limit(
        limiter,
        "seo-analysis",
        identifier,
        lambda: analyzer.analyze_keyword(keyword, req.max_results),
    )
    return {
        "success": True,
        "analysis": dataclasses.asdict(analysis),
        "insights": analyzer.insights(analysis),
        "outline": analyzer.content_outline(analysis),
        "keywords": analyzer.extract_keywords(analysis),
        "heading_levels": analyzer.heading_level_insights(analysis),
        "timestamp": _now(),
    }
