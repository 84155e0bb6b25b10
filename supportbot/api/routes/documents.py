"""Knowledge-base document management endpoints (admin only)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel

from supportbot.api.dependencies import get_document_service, require_admin
from supportbot.core.config import settings
from supportbot.knowledge.ingestion.service import DocumentService
from supportbot.models import DocumentStatus, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class DocumentUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class UploadResponse(BaseModel):
    id: str
    title: str
    status: DocumentStatus
    detail: str = "Document uploaded successfully. Processing in progress."


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    current_user: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
) -> UploadResponse:
    # Read one byte past the limit so oversized uploads are rejected without buffering them whole.
    content = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    document = await service.upload(
        content,
        original_name=file.filename or "upload",
        mime_type=file.content_type or "",
        uploaded_by=current_user.id,
        title=title,
        description=description,
    )
    return UploadResponse(id=document.id, title=document.title, status=document.status)


@router.get("")
async def list_documents(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
) -> Dict[str, Any]:
    documents = await service.list(status_filter)
    return {"documents": [document.summary() for document in documents], "total": len(documents)}


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    current_user: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
) -> Dict[str, Any]:
    document = await service.get(document_id)
    return document.model_dump(mode="json", exclude={"raw_content"})


@router.put("/{document_id}")
async def update_document(
    document_id: str,
    request: DocumentUpdateRequest,
    current_user: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
) -> Dict[str, Any]:
    document = await service.update(
        document_id,
        title=request.title,
        description=request.description,
        is_active=request.is_active,
    )
    return document.summary()


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    current_user: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
) -> Dict[str, str]:
    await service.delete(document_id)
    return {"detail": "Document deleted successfully"}


@router.post("/{document_id}/reprocess", status_code=status.HTTP_202_ACCEPTED)
async def reprocess_document(
    document_id: str,
    current_user: User = Depends(require_admin),
    service: DocumentService = Depends(get_document_service),
) -> Dict[str, str]:
    await service.reprocess(document_id)
    return {"detail": "Document reprocessing started"}
