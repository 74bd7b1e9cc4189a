"""Publishing target data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PostStatus(Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PRIVATE = "private"
    PUBLISH = "publish"
    FUTURE = "future"


@dataclass
class SiteCredentials:
    url: str
    username: str
    password: str  # application password

    @property
    def complete(self) -> bool:
        return bool(self.url and self.username and self.password)


@dataclass
class SiteInfo:
    url: str
    name: str = ""
    description: str = ""
    timezone: str = ""
    language: str = ""
    date_format: str = ""
    time_format: str = ""
    connected: bool = False
    last_tested: str | None = None


@dataclass
class ConnectionResult:
    success: bool
    site_info: SiteInfo | None = None
    error: str | None = None


@dataclass
class PublishOptions:
    status: PostStatus = PostStatus.DRAFT
    scheduled_date: str | None = None
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    featured_image_url: str | None = None
    allow_comments: bool = True
    seo_title: str | None = None
    seo_description: str | None = None


@dataclass
class PublishResult:
    success: bool
    post: dict | None = None
    url: str | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def post_id(self) -> int | None:
        return self.post.get("id") if self.post else None
