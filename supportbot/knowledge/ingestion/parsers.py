"""Text extraction for uploaded knowledge-base files."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict

import pdfplumber
from docx import Document as DocxDocument

from supportbot.core.exceptions import ExtractionError, UnsupportedTypeError
from supportbot.models.document import MimeCategory

logger = logging.getLogger(__name__)


class DocumentParser:
    """Turn a stored PDF, DOCX or plain-text file into a single text string.

    Exactly one strategy exists per supported category. Failures are raised as
    `ExtractionError`; there is no fallback decoding and no retry, the caller
    records the failure on the document.
    """

    def __init__(self) -> None:
        self._strategies: Dict[MimeCategory, Callable[[Path], str]] = {
            MimeCategory.PDF: self._parse_pdf,
            MimeCategory.DOCX: self._parse_docx,
            MimeCategory.TEXT: self._parse_text,
        }

    async def extract(self, file_path: str | Path, mime_type: MimeCategory | str) -> str:
        category = mime_type if isinstance(mime_type, MimeCategory) else MimeCategory.from_mime(mime_type)
        strategy = self._strategies.get(category)
        if strategy is None:  # pragma: no cover - every category has a strategy
            raise UnsupportedTypeError(f"Unsupported file type: {category.value}")

        path = Path(file_path)
        try:
            return await asyncio.to_thread(strategy, path)
        except ExtractionError:
            raise
        except OSError as exc:
            logger.error("Unable to read %s: %s", path, exc)
            raise ExtractionError(f"Failed to read file: {exc.strerror or exc}") from exc
        except Exception as exc:
            logger.exception("Failed to extract %s from %s", category.name, path)
            raise ExtractionError(f"Failed to extract text from {category.name}: {exc}") from exc

    def _parse_pdf(self, path: Path) -> str:
        with pdfplumber.open(path) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
        return "\n\n".join(page.strip() for page in pages if page.strip())

    def _parse_docx(self, path: Path) -> str:
        doc = DocxDocument(str(path))
        return "\n".join(paragraph.text.strip() for paragraph in doc.paragraphs if paragraph.text.strip())

    def _parse_text(self, path: Path) -> str:
        content = path.read_bytes()
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Unsupported text encoding: {exc.reason}") from exc
