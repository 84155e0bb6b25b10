"""FAQ management and feedback counters."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from supportbot.core.exceptions import NotFoundError, ValidationError
from supportbot.knowledge.stores.base import FAQStore
from supportbot.models import FAQ

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"question", "answer", "category", "tags", "priority", "is_active"})


class FAQService:
    def __init__(self, faqs: FAQStore) -> None:
        self.faqs = faqs

    async def create(
        self,
        *,
        question: str,
        answer: str,
        created_by: str,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
        priority: int = 0,
    ) -> FAQ:
        try:
            faq = FAQ(
                question=question,
                answer=answer,
                category=category or "General",
                tags=tags or [],
                priority=priority,
                created_by=created_by,
            )
        except PydanticValidationError as exc:
            raise ValidationError(_first_error(exc)) from exc
        logger.info("FAQ %s created by %s", faq.id, created_by)
        return await self.faqs.save(faq)

    async def list(self, category: Optional[str] = None, *, active: Optional[bool] = True) -> List[FAQ]:
        """List FAQs in a category; `active=None` includes disabled entries."""
        return await self.faqs.list(active=active, category=category)

    async def get(self, faq_id: str) -> FAQ:
        """Fetch an FAQ for display; every read counts as a view."""

        faq = await self._load(faq_id)
        faq.view_count += 1
        return await self.faqs.save(faq)

    async def update(self, faq_id: str, changes: Dict[str, Any], *, updated_by: str) -> FAQ:
        faq = await self._load(faq_id)
        payload = faq.model_dump()
        payload.update({key: value for key, value in changes.items() if key in EDITABLE_FIELDS and value is not None})
        payload.update(updated_by=updated_by, updated_at=datetime.utcnow())
        try:
            updated = FAQ.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(_first_error(exc)) from exc
        return await self.faqs.save(updated)

    async def delete(self, faq_id: str) -> None:
        if not await self.faqs.delete(faq_id):
            raise NotFoundError("FAQ not found")
        logger.info("FAQ %s deleted", faq_id)

    async def mark_helpful(self, faq_id: str, helpful: bool) -> FAQ:
        faq = await self._load(faq_id)
        if helpful:
            faq.helpful_count += 1
        else:
            faq.not_helpful_count += 1
        return await self.faqs.save(faq)

    async def _load(self, faq_id: str) -> FAQ:
        faq = await self.faqs.get(faq_id)
        if faq is None:
            raise NotFoundError("FAQ not found")
        return faq


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid FAQ"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid FAQ")
