"""Knowledge-base document management: upload, listing, edits and removal."""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import List, Optional

from supportbot.core.config import settings
from supportbot.core.exceptions import NotFoundError, ValidationError
from supportbot.knowledge.ingestion.pipeline import ProcessingJob, ProcessingQueue
from supportbot.knowledge.ingestion.storage import FileStorage
from supportbot.knowledge.stores.base import DocumentStore
from supportbot.models import Document, DocumentStatus, MimeCategory

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(
        self,
        *,
        documents: DocumentStore,
        storage: FileStorage,
        queue: ProcessingQueue,
        max_upload_bytes: Optional[int] = None,
    ) -> None:
        self.documents = documents
        self.storage = storage
        self.queue = queue
        self.max_upload_bytes = max_upload_bytes or settings.MAX_UPLOAD_BYTES

    async def upload(
        self,
        content: bytes,
        *,
        original_name: str,
        mime_type: str,
        uploaded_by: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Document:
        """Store the file, record a pending document and queue its processing.

        Returns as soon as the job is queued; extraction happens in the
        background and is visible through the document's status.
        """

        if not content:
            raise ValidationError("No file uploaded")
        if len(content) > self.max_upload_bytes:
            raise ValidationError(f"File exceeds the {self.max_upload_bytes} byte upload limit")
        category = MimeCategory.from_mime(mime_type)

        extension = PurePath(original_name).suffix or category.extension
        stored = await self.storage.write(content, extension=extension)

        document = Document(
            title=(title or "").strip() or original_name,
            description=description or "",
            filename=stored.filename,
            original_name=original_name,
            mime_type=category,
            file_size=stored.size,
            file_path=stored.path,
            uploaded_by=uploaded_by,
        )
        document = await self.documents.save(document)
        logger.info("Document %s uploaded by %s (%s, %d bytes)", document.id, uploaded_by, category.value, stored.size)

        self.queue.enqueue(document.id)
        return document

    async def list(self, status: Optional[DocumentStatus] = None) -> List[Document]:
        documents = await self.documents.list(status=status)
        return sorted(documents, key=lambda item: item.created_at, reverse=True)

    async def get(self, document_id: str) -> Document:
        document = await self.documents.get(document_id)
        if document is None:
            raise NotFoundError("Document not found")
        return document

    async def update(
        self,
        document_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Document:
        document = await self.get(document_id)
        if title is not None:
            if not title.strip():
                raise ValidationError("Title cannot be empty")
            document.title = title.strip()
        if description is not None:
            document.description = description
        if is_active is not None:
            document.is_active = is_active
        return await self.documents.save(document)

    async def delete(self, document_id: str) -> None:
        document = await self.get(document_id)
        # A missing file is logged by the storage layer; the record is removed regardless.
        await self.storage.delete(document.file_path)
        await self.documents.delete(document_id)
        logger.info("Document %s deleted", document_id)

    async def reprocess(self, document_id: str) -> ProcessingJob:
        document = await self.get(document_id)
        logger.info("Reprocessing document %s (status=%s)", document.id, document.status.value)
        return self.queue.enqueue(document.id)
