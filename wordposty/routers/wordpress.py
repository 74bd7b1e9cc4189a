"""WordPress site and publishing endpoints."""

from __future__ import annotations

import dataclasses
import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from wordposty.config import settings
from wordposty.dependencies import client_id, get_pipeline
from wordposty.errors import APIError
from wordposty.models.requests import ConnectSiteRequest, PublishRequest
from wordposty.orchestrator.pipeline import Pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wordpress", tags=["wordpress"])


@router.get("/sites")
async def default_site(pipeline: Annotated[Pipeline, Depends(get_pipeline)]):
    """Report on the site configured through the environment, if any."""
    if not settings.has_default_site:
        return {
            "has_default_site": False,
            "message": "No default WordPress site configured",
            "required_env_vars": [
                "WORDPOSTY_WORDPRESS_URL",
                "WORDPOSTY_WORDPRESS_USERNAME",
                "WORDPOSTY_WORDPRESS_APP_PASSWORD",
            ],
        }

    result = await pipeline.wordpress(None).test_connection()
    if not result.success:
        return {
            "has_default_site": True,
            "connected": False,
            "error": result.error,
            "is_default": True,
        }
    return {
        "has_default_site": True,
        "connected": True,
        "site_info": dataclasses.asdict(result.site_info),
        "is_default": True,
    }


@router.post("/sites")
async def connect_site(
    req: ConnectSiteRequest,
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
):
    """Test a site's credentials and summarize its terms and recent posts."""
    credentials = req.credentials.to_credentials()
    logger.info("Testing WordPress connection to %s", credentials.url)

    client = pipeline.wordpress(credentials)
    result = await client.test_connection()
    if not result.success:
        raise APIError(result.error or "Connection test failed", 400, "wordpress")

    categories = await client.get_categories()
    tags = await client.get_tags()
    posts = await client.get_posts(5)
    return {
        "success": True,
        "site_info": dataclasses.asdict(result.site_info),
        "additional_info": {
            "categories_count": len(categories),
            "tags_count": len(tags),
            "recent_posts_count": len(posts),
            "categories": [{"id": c.get("id"), "name": c.get("name")} for c in categories[:10]],
            "tags": [{"id": t.get("id"), "name": t.get("name")} for t in tags[:20]],
            "recent_posts": [
                {
                    "id": p.get("id"),
                    "title": (p.get("title") or {}).get("rendered", ""),
                    "status": p.get("status"),
                    "date": p.get("date"),
                }
                for p in posts
            ],
        },
    }


@router.post("/publish")
async def publish(
    req: PublishRequest,
    pipeline: Annotated[Pipeline, Depends(get_pipeline)],
    identifier: Annotated[str, Depends(client_id)],
):
    result = await pipeline.publish(
        req.article.to_article(), req.options.to_options(), req.site(), identifier
    )
    if not result.success:
        raise APIError(result.error or "Publishing failed", 502, "wordpress")
    return {
        "success": True,
        "post_id": result.post_id,
        "url": result.url,
        "status": (result.post or {}).get("status"),
        "warnings": result.warnings,
    }
