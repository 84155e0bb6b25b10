"""Knowledge-base document data model definitions."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from supportbot.core.exceptions import InvalidStatusTransitionError, UnsupportedTypeError


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


# Re-entering PROCESSING from PROCESSING is a restart of the job, not a new edge.
ALLOWED_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.PROCESSING, DocumentStatus.READY, DocumentStatus.ERROR}),
    DocumentStatus.READY: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.ERROR: frozenset({DocumentStatus.PROCESSING}),
}


class MimeCategory(str, Enum):
    PDF = "application/pdf"
    DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    TEXT = "text/plain"

    @classmethod
    def from_mime(cls, mime_type: str | None) -> "MimeCategory":
        normalized = (mime_type or "").split(";", 1)[0].strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise UnsupportedTypeError(f"Unsupported file type: {mime_type}") from exc

    @property
    def extension(self) -> str:
        return {MimeCategory.PDF: ".pdf", MimeCategory.DOCX: ".docx", MimeCategory.TEXT: ".txt"}[self]


class ChunkMetadata(BaseModel):
    start_page: Optional[int] = None
    end_page: Optional[int] = None
    heading: Optional[str] = None


class Chunk(BaseModel):
    content: str
    chunk_index: int = Field(..., ge=0)
    metadata: Optional[ChunkMetadata] = None


def _now() -> datetime:
    return datetime.utcnow()


class Document(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str
    description: str = ""
    filename: str
    original_name: str
    mime_type: MimeCategory
    file_size: int = Field(..., ge=0)
    file_path: str
    raw_content: Optional[str] = None
    chunks: List[Chunk] = Field(default_factory=list)
    status: DocumentStatus = DocumentStatus.PENDING
    processing_error: Optional[str] = None
    processing_generation: int = 0
    uploaded_by: str
    is_active: bool = True
    total_chunks: int = 0
    word_count: int = 0
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def transition_to(self, status: DocumentStatus) -> None:
        """Move the document along its processing lifecycle."""

        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(
                f"Document {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def begin_processing(self) -> int:
        """Enter PROCESSING and stamp a fresh generation for the run that owns it."""

        self.transition_to(DocumentStatus.PROCESSING)
        self.processing_generation += 1
        return self.processing_generation

    def sync_counters(self) -> None:
        self.total_chunks = len(self.chunks)
        self.updated_at = _now()

    def summary(self) -> Dict[str, object]:
        """Listing view without the extracted text payload."""

        return self.model_dump(mode="json", exclude={"raw_content", "chunks"})
