"""Normalizes text, URL and file inputs into sources for research."""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import datetime, timezone
from pathlib import PurePath

from wordposty.backends.base import count_words
from wordposty.backends.jina import JinaReader
from wordposty.errors import APIError
from wordposty.models.source import Source, SourceInput, SourceProcessingResult, SourceType
from wordposty.orchestrator.extractor import URLExtractor, is_valid_url
from wordposty.orchestrator.files import FileProcessor, UploadedFile

logger = logging.getLogger(__name__)

MIN_ANALYSIS_WORDS = 50
MAX_ANALYSIS_WORDS = 20000


def title_from_text(text: str) -> str:
    """First line, else first sentence, else a 50 character preview."""
    first_line = text.split("\n", 1)[0].strip()
    if 0 < len(first_line) <= 100:
        return first_line

    first_sentence = re.split(r"[.!?]", text, maxsplit=1)[0].strip()
    if 0 < len(first_sentence) <= 100:
        return first_sentence

    return text[:50].strip() + "..."


def title_from_filename(filename: str) -> str | None:
    stem = PurePath(filename).stem
    title = re.sub(r"[-_]", " ", stem).title().strip()
    if 3 < len(title) <= 50:
        return title
    return None


class SourceManager:
    def __init__(
        self,
        extractor: URLExtractor | None = None,
        files: FileProcessor | None = None,
        reader: JinaReader | None = None,
    ) -> None:
        self.reader = reader or JinaReader()
        self.extractor = extractor or URLExtractor()
        self.files = files or FileProcessor(self.reader)

    async def process_sources(self, inputs: list[SourceInput]) -> SourceProcessingResult:
        """Process every input independently; one failure doesn't stop the rest."""
        result = SourceProcessingResult()

        for source_input in inputs:
            try:
                source = await self.process_source(source_input)
            except (APIError, ValueError) as exc:
                reason = exc.message if isinstance(exc, APIError) else str(exc)
            except Exception as exc:
                logger.exception("Unexpected error processing source %s", source_input.id)
                reason = str(exc) or type(exc).__name__
            else:
                result.sources.append(source)
                result.total_word_count += source.word_count
                continue

            result.errors.append(
                f"Failed to process {source_input.type.value} source ({source_input.id}): {reason}"
            )
            result.success = False

        if not result.sources:
            result.success = False
            result.errors.append("No sources were successfully processed")

        logger.info(
            "Processed %d/%d sources (%d words)",
            len(result.sources),
            len(inputs),
            result.total_word_count,
        )
        return result

    async def process_source(self, source_input: SourceInput) -> Source:
        if source_input.type == SourceType.TEXT:
            return self._process_text(source_input)
        if source_input.type == SourceType.URL:
            return await self._process_url(source_input)
        return await self._process_file(source_input)

    def _process_text(self, source_input: SourceInput) -> Source:
        content = source_input.content.strip()
        if not content:
            raise ValueError("Text content cannot be empty")

        return Source(
            id=source_input.id,
            type=SourceType.TEXT,
            title=title_from_text(content),
            content=content,
            word_count=count_words(content),
            metadata={"processed_at": _now()},
        )

    async def _process_url(self, source_input: SourceInput) -> Source:
        url = source_input.content.strip()
        if not is_valid_url(url):
            raise ValueError("Invalid URL format")

        try:
            extracted = await self.extractor.extract(url)
        except APIError as exc:
            if not self.reader.configured:
                raise
            logger.warning("Local extraction failed for %s (%s), trying reader", url, exc.message)
            extracted = await self.reader.read_url(url)

        return Source(
            id=source_input.id,
            type=SourceType.URL,
            title=extracted.title,
            content=extracted.content,
            word_count=extracted.word_count,
            metadata={
                "url": url,
                "description": extracted.description,
                "author": extracted.author,
                "publish_date": extracted.publish_date,
                "tags": extracted.tags,
                "processed_at": _now(),
            },
        )

    async def _process_file(self, source_input: SourceInput) -> Source:
        if source_input.data is None:
            raise ValueError("File source has no data")

        processed = await self.files.process_file(
            UploadedFile(source_input.content, source_input.data, source_input.content_type)
        )
        return Source(
            id=source_input.id,
            type=SourceType.FILE,
            title=title_from_filename(processed.name) or title_from_text(processed.content),
            content=processed.content,
            word_count=processed.word_count,
            metadata={
                "file_name": processed.name,
                "file_size": processed.size,
                "file_type": processed.type,
                "processed_at": _now(),
            },
        )

    # -- Helpers for the research stage --

    @staticmethod
    def count_words(text: str) -> int:
        return count_words(text)

    @staticmethod
    def format_for_prompt(sources: list[Source]) -> str:
        blocks = []
        for index, source in enumerate(sources, start=1):
            lines = [
                f"## Source {index}: {source.title}",
                f"Type: {source.type.value.upper()}",
            ]
            if source.metadata.get("url"):
                lines.append(f"URL: {source.metadata['url']}")
            if source.metadata.get("author"):
                lines.append(f"Author: {source.metadata['author']}")
            if source.metadata.get("publish_date"):
                lines.append(f"Published: {source.metadata['publish_date']}")
            lines.append("")
            lines.append(source.content)
            blocks.append("\n".join(lines))
        return "\n\n---\n\n".join(blocks)

    @staticmethod
    def summarize(sources: list[Source]) -> dict:
        by_type = Counter(source.type.value for source in sources)
        return {
            "total_sources": len(sources),
            "total_words": sum(source.word_count for source in sources),
            "by_type": {t.value: by_type.get(t.value, 0) for t in SourceType},
        }

    @staticmethod
    def validate_for_analysis(sources: list[Source]) -> tuple[bool, list[str]]:
        errors: list[str] = []
        if not sources:
            errors.append("At least one source is required")

        total_words = sum(source.word_count for source in sources)
        if sources and total_words < MIN_ANALYSIS_WORDS:
            errors.append(
                f"Sources need at least {MIN_ANALYSIS_WORDS} words in total for meaningful analysis"
            )
        if total_words > MAX_ANALYSIS_WORDS:
            errors.append(
                f"Sources exceed {MAX_ANALYSIS_WORDS} words; remove some content to stay within limits"
            )

        failed = [source for source in sources if source.error]
        if failed:
            errors.append(f"{len(failed)} source(s) have processing errors")

        return not errors, errors


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
