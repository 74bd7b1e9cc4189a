"""Source data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SourceType(Enum):
    TEXT = "text"
    URL = "url"
    FILE = "file"


@dataclass
class SourceInput:
    """A unit of user input before normalization.

    For TEXT the content is the raw text, for URL it is the address, and for
    FILE it is the file name with the raw bytes in ``data``.
    """

    id: str
    type: SourceType
    content: str
    data: bytes | None = None
    content_type: str | None = None


@dataclass
class Source:
    """A source normalized to plain text."""

    id: str
    type: SourceType
    title: str
    content: str
    word_count: int
    metadata: dict = field(default_factory=dict)
    error: str | None = None


@dataclass
class SourceProcessingResult:
    success: bool = True
    sources: list[Source] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_word_count: int = 0


@dataclass
class ExtractedContent:
    """Text pulled out of a web page or document."""

    title: str
    content: str
    word_count: int
    description: str = ""
    url: str | None = None
    author: str | None = None
    publish_date: str | None = None
    tags: list[str] = field(default_factory=list)
