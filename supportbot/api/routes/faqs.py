"""FAQ endpoints: public reads and feedback, admin writes."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from supportbot.api.dependencies import get_current_user, get_faq_service, require_admin
from supportbot.core.exceptions import ForbiddenError
from supportbot.knowledge.faqs import FAQService
from supportbot.models import FAQ, User

router = APIRouter(prefix="/faqs", tags=["faqs"])


class FAQCreateRequest(BaseModel):
    question: str
    answer: str
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    priority: int = 0


class FAQUpdateRequest(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class HelpfulRequest(BaseModel):
    helpful: bool


class FAQListResponse(BaseModel):
    faqs: List[FAQ]
    categories: List[str]
    total: int


@router.post("", response_model=FAQ, status_code=status.HTTP_201_CREATED)
async def create_faq(
    request: FAQCreateRequest,
    current_user: User = Depends(require_admin),
    service: FAQService = Depends(get_faq_service),
) -> FAQ:
    return await service.create(
        question=request.question,
        answer=request.answer,
        category=request.category,
        tags=request.tags,
        priority=request.priority,
        created_by=current_user.id,
    )


@router.get("", response_model=FAQListResponse)
async def list_faqs(
    category: Optional[str] = None,
    active: Optional[bool] = True,
    include_inactive: bool = False,
    current_user: User = Depends(get_current_user),
    service: FAQService = Depends(get_faq_service),
) -> FAQListResponse:
    if include_inactive:
        active = None
    if active is not True and not current_user.is_admin:
        raise ForbiddenError("Admin access required to list inactive FAQs")
    faqs = await service.list(category, active=active)
    categories = sorted({faq.category for faq in await service.list()})
    return FAQListResponse(faqs=faqs, categories=categories, total=len(faqs))


@router.get("/{faq_id}", response_model=FAQ)
async def get_faq(
    faq_id: str,
    current_user: User = Depends(get_current_user),
    service: FAQService = Depends(get_faq_service),
) -> FAQ:
    return await service.get(faq_id)


@router.put("/{faq_id}", response_model=FAQ)
async def update_faq(
    faq_id: str,
    request: FAQUpdateRequest,
    current_user: User = Depends(require_admin),
    service: FAQService = Depends(get_faq_service),
) -> FAQ:
    return await service.update(faq_id, request.model_dump(exclude_unset=True), updated_by=current_user.id)


@router.delete("/{faq_id}")
async def delete_faq(
    faq_id: str,
    current_user: User = Depends(require_admin),
    service: FAQService = Depends(get_faq_service),
) -> Dict[str, Any]:
    await service.delete(faq_id)
    return {"detail": "FAQ deleted successfully"}


@router.post("/{faq_id}/helpful")
async def mark_helpful(
    faq_id: str,
    request: HelpfulRequest,
    current_user: User = Depends(get_current_user),
    service: FAQService = Depends(get_faq_service),
) -> Dict[str, Any]:
    await service.mark_helpful(faq_id, request.helpful)
    return {"detail": "Feedback recorded"}
