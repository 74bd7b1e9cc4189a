"""Uploaded documents to plain text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath

from wordposty.backends.base import count_words
from wordposty.backends.jina import JinaReader
from wordposty.errors import APIError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

PDF = "application/pdf"
TEXT_TYPES = ("text/plain", "text/markdown")
WORD_TYPES = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
)
ALLOWED_TYPES = (PDF, *TEXT_TYPES, *WORD_TYPES)

EXTENSION_TYPES = {
    ".pdf": PDF,
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".docx": WORD_TYPES[0],
    ".doc": WORD_TYPES[1],
}

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


@dataclass
class UploadedFile:
    name: str
    data: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ProcessedFile:
    name: str
    type: str
    size: int
    content: str
    word_count: int


@dataclass
class FileProcessingResult:
    success: bool = True
    files: list[ProcessedFile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def resolve_type(name: str, content_type: str | None) -> str:
    """Use the declared content type, or guess it from the extension."""
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared in ALLOWED_TYPES:
        return declared
    return EXTENSION_TYPES.get(PurePath(name).suffix.lower(), declared)


def clean_content(content: str) -> str:
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    content = CONTROL_CHARS.sub("", content)
    return re.sub(r"\s+", " ", content).strip()


class FileProcessor:
    def __init__(self, reader: JinaReader | None = None, max_file_size: int = MAX_FILE_SIZE) -> None:
        self.reader = reader
        self.max_file_size = max_file_size

    async def process_files(self, files: list[UploadedFile]) -> FileProcessingResult:
        result = FileProcessingResult()
        for upload in files:
            try:
                result.files.append(await self.process_file(upload))
            except APIError as exc:
                result.errors.append(f"Failed to process {upload.name}: {exc.message}")
                result.success = False
        return result

    async def process_file(self, upload: UploadedFile) -> ProcessedFile:
        file_type = resolve_type(upload.name, upload.content_type)
        self.validate(upload, file_type)

        if file_type in TEXT_TYPES:
            try:
                content = upload.data.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise APIError("Text file is not valid UTF-8", 400, "files") from exc
        elif file_type == PDF:
            content = await self._process_pdf(upload)
        else:
            raise APIError(
                "Word document processing is not supported. Please convert to PDF or text format.",
                415,
                "files",
            )

        content = clean_content(content)
        if not content:
            raise APIError("No readable content found in file", 422, "files")

        return ProcessedFile(
            name=upload.name,
            type=file_type,
            size=upload.size,
            content=content,
            word_count=count_words(content),
        )

    def validate(self, upload: UploadedFile, file_type: str) -> None:
        if upload.size > self.max_file_size:
            raise APIError(
                f"File size exceeds limit ({self.max_file_size // 1024 // 1024}MB)", 413, "files"
            )
        if file_type not in ALLOWED_TYPES:
            raise APIError(f"File type not supported: {file_type or 'unknown'}", 415, "files")

    async def _process_pdf(self, upload: UploadedFile) -> str:
        if self.reader is None or not self.reader.configured:
            raise APIError(
                "PDF processing needs the reader service. Set WORDPOSTY_JINA_API_KEY.",
                415,
                "files",
            )
        extracted = await self.reader.read_pdf(upload.name, upload.data)
        return extracted.content

    @staticmethod
    def supported_extensions() -> list[str]:
        return [".pdf", ".txt", ".md"]
