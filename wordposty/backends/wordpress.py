"""WordPress publishing backend — REST API v2 with application passwords."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from datetime import datetime, timezone

import httpx

from wordposty.config import settings
from wordposty.errors import APIError, ValidationError
from wordposty.models.article import GeneratedArticle
from wordposty.models.publish import (
    ConnectionResult,
    PostStatus,
    PublishOptions,
    PublishResult,
    SiteCredentials,
    SiteInfo,
)

logger = logging.getLogger(__name__)

USER_AGENT = "WordPosty/1.0"

CONNECTION_MESSAGES = {
    401: "Authentication failed. Check username and app password.",
    403: "Access forbidden. User may not have sufficient permissions.",
    404: "WordPress REST API not found. Check if site URL is correct.",
}

IMAGE_EXTENSIONS = {"png": "png", "gif": "gif", "webp": "webp"}


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def merge_tags(*groups: list[str]) -> list[str]:
    """Concatenate tag lists, keeping the first occurrence of each tag."""
    seen: list[str] = []
    for group in groups:
        for tag in group or []:
            if tag not in seen:
                seen.append(tag)
    return seen


def default_credentials() -> SiteCredentials:
    return SiteCredentials(
        url=settings.wordpress_url,
        username=settings.wordpress_username,
        password=settings.wordpress_app_password,
    )


class WordPressClient:
    """Creates posts, terms and media on one WordPress site."""

    name: str = "wordpress"

    def __init__(
        self,
        credentials: SiteCredentials | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        credentials = credentials or default_credentials()
        if not credentials.complete:
            raise ValidationError(
                "WordPress credentials are incomplete (url, username, password)",
                "credentials",
            )
        self.credentials = credentials
        self.base_url = credentials.url.rstrip("/") + "/wp-json/wp/v2/"
        self.transport = transport

    def _client(self, timeout: float = 30.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.credentials.username, self.credentials.password),
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
            transport=self.transport,
        )

    # -- Connection --

    async def test_connection(self) -> ConnectionResult:
        try:
            async with self._client() as client:
                root = await client.get("")
                root.raise_for_status()
                response = await client.get("settings")
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = CONNECTION_MESSAGES.get(status, f"WordPress returned HTTP {status}")
            return ConnectionResult(success=False, error=message)
        except httpx.HTTPError as exc:
            return ConnectionResult(success=False, error=f"Connection error: {exc}")

        data = response.json()
        return ConnectionResult(
            success=True,
            site_info=SiteInfo(
                url=self.credentials.url,
                name=data.get("title", ""),
                description=data.get("description", ""),
                timezone=data.get("timezone", ""),
                language=data.get("language", ""),
                date_format=data.get("date_format", ""),
                time_format=data.get("time_format", ""),
                connected=True,
                last_tested=datetime.now(timezone.utc).isoformat(),
            ),
        )

    # -- Publishing --

    async def publish_post(
        self, article: GeneratedArticle, options: PublishOptions | None = None
    ) -> PublishResult:
        """Create a post for *article*; term and image failures become warnings."""
        options = options or PublishOptions()
        warnings: list[str] = []

        try:
            async with self._client() as client:
                category_ids = await self._get_or_create_terms(
                    client, "categories", options.categories, warnings
                )
                tag_ids = await self._get_or_create_terms(client, "tags", options.tags, warnings)

                featured_media = None
                if options.featured_image_url:
                    try:
                        featured_media = await self._upload_featured_image(
                            client, options.featured_image_url, article.title
                        )
                    except (httpx.HTTPError, APIError) as exc:
                        warnings.append(f"Failed to upload featured image: {exc}")

                response = await client.post(
                    "posts", json=self.build_post(article, options, category_ids, tag_ids, featured_media)
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _wp_message(exc.response)
            logger.error("WordPress publish failed: %s", message)
            return PublishResult(success=False, error=f"WordPress API Error: {message}")
        except httpx.HTTPError as exc:
            logger.error("WordPress publish failed: %s", exc)
            return PublishResult(success=False, error=f"WordPress API Error: {exc}")

        post = response.json()
        logger.info("Published WordPress post %s (%s)", post.get("id"), post.get("status"))
        return PublishResult(success=True, post=post, url=post.get("link"), warnings=warnings)

    def build_post(
        self,
        article: GeneratedArticle,
        options: PublishOptions,
        category_ids: list[int],
        tag_ids: list[int],
        featured_media: int | None = None,
    ) -> dict:
        title = options.seo_title or article.title
        post: dict = {
            "title": title,
            "content": article.content,
            "excerpt": article.excerpt,
            "status": options.status.value,
            "comment_status": "open" if options.allow_comments else "closed",
            "ping_status": "closed",
            "meta": {
                "_yoast_wpseo_title": title,
                "_yoast_wpseo_metadesc": options.seo_description or article.meta_description,
                "_yoast_wpseo_focuskw": article.tags[0] if article.tags else "",
                "_wordposty_generated": True,
                "_wordposty_seo_score": article.seo_score,
                "_wordposty_generation_date": datetime.now(timezone.utc).isoformat(),
            },
        }
        if category_ids:
            post["categories"] = category_ids
        if tag_ids:
            post["tags"] = tag_ids
        if featured_media is not None:
            post["featured_media"] = featured_media
        if options.status == PostStatus.FUTURE and options.scheduled_date:
            post["date"] = options.scheduled_date
        return post

    async def _get_or_create_terms(
        self,
        client: httpx.AsyncClient,
        taxonomy: str,
        names: list[str],
        warnings: list[str],
    ) -> list[int]:
        ids: list[int] = []
        for name in names:
            try:
                response = await client.get(taxonomy, params={"search": name, "per_page": 100})
                response.raise_for_status()
                existing = next(
                    (t for t in response.json() if t.get("name", "").lower() == name.lower()),
                    None,
                )
                if existing:
                    ids.append(existing["id"])
                    continue

                response = await client.post(taxonomy, json={"name": name, "slug": slugify(name)})
                response.raise_for_status()
                ids.append(response.json()["id"])
            except httpx.HTTPError as exc:
                logger.warning("Failed to process %s term %r: %s", taxonomy, name, exc)
                warnings.append(f"Failed to process {taxonomy} term '{name}'")
        return ids

    async def _upload_featured_image(
        self, client: httpx.AsyncClient, image_url: str, post_title: str
    ) -> int:
        image, content_type = await self._load_image(client, image_url)
        extension = next(
            (ext for key, ext in IMAGE_EXTENSIONS.items() if key in content_type), "jpg"
        )
        filename = f"{slugify(post_title) or 'featured-image'}.{extension}"

        response = await client.post(
            "media",
            content=image,
            headers={
                "Content-Type": content_type,
                "Content-Disposition": f'attachment; filename="{filename}"',
            },
        )
        response.raise_for_status()
        return response.json()["id"]

    async def _load_image(self, client: httpx.AsyncClient, image_url: str) -> tuple[bytes, str]:
        """Return image bytes and content type for an http(s) or data: URL."""
        if image_url.startswith("data:"):
            header, _, encoded = image_url.partition(",")
            content_type = header[5:].split(";", 1)[0] or "image/jpeg"
            try:
                return base64.b64decode(encoded, validate=True), content_type
            except binascii.Error as exc:
                raise APIError("Featured image data URL is not valid base64", 400, self.name) from exc

        # Separate client so site credentials are not sent to the image host
        async with httpx.AsyncClient(timeout=15.0, transport=self.transport) as downloader:
            response = await downloader.get(image_url)
            response.raise_for_status()
        return response.content, response.headers.get("content-type", "image/jpeg")

    # -- Listing --

    async def get_categories(self) -> list[dict]:
        return await self._list("categories", {"per_page": 100, "orderby": "name", "order": "asc"})

    async def get_tags(self) -> list[dict]:
        return await self._list("tags", {"per_page": 100, "orderby": "name", "order": "asc"})

    async def get_posts(self, limit: int = 10) -> list[dict]:
        return await self._list("posts", {"per_page": limit, "orderby": "date", "order": "desc"})

    async def _list(self, endpoint: str, params: dict) -> list[dict]:
        try:
            async with self._client() as client:
                response = await client.get(endpoint, params=params)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch WordPress %s: %s", endpoint, exc)
            return []
        return response.json()


def _wp_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase
