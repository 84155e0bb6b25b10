"""FAQ data model definitions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class FAQ(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    category: str = "General"
    tags: List[str] = Field(default_factory=list)
    priority: int = Field(0, ge=0, le=10)
    is_active: bool = True
    created_by: str
    updated_by: Optional[str] = None
    view_count: int = 0
    helpful_count: int = 0
    not_helpful_count: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("question", "category", mode="before")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: List[str] | None) -> List[str]:
        return [tag.strip().lower() for tag in value or [] if tag and tag.strip()]

    @property
    def helpfulness_score(self) -> float:
        total = self.helpful_count + self.not_helpful_count
        return (self.helpful_count / total) * 100 if total > 0 else 0.0
