from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class User(BaseModel):
    id: str
    email: str
    name: str
    role: str = "user"
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
