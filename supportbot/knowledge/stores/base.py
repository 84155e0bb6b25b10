"""Persistence contracts for documents, FAQs and conversations."""

from __future__ import annotations

from typing import List, Optional, Protocol

from supportbot.models import FAQ, Conversation, Document, DocumentStatus


class DocumentStore(Protocol):
    async def get(self, document_id: str) -> Optional[Document]:
        ...

    async def list(self, *, status: Optional[DocumentStatus] = None, active: Optional[bool] = None) -> List[Document]:
        ...

    async def save(self, document: Document) -> Document:
        ...

    async def delete(self, document_id: str) -> bool:
        ...


class FAQStore(Protocol):
    async def get(self, faq_id: str) -> Optional[FAQ]:
        ...

    async def list(self, *, active: Optional[bool] = True, category: Optional[str] = None) -> List[FAQ]:
        ...

    async def list_active(self, limit: int) -> List[FAQ]:
        """Active FAQs ordered by priority, then recency, newest first."""
        ...

    async def save(self, faq: FAQ) -> FAQ:
        ...

    async def delete(self, faq_id: str) -> bool:
        ...


class ConversationStore(Protocol):
    async def get(self, conversation_id: str, owner_id: str) -> Optional[Conversation]:
        ...

    async def list(self, owner_id: str) -> List[Conversation]:
        """Conversations that are not soft-deleted, most recently updated first."""
        ...

    async def save(self, conversation: Conversation) -> Conversation:
        ...
