"""In-process stores used for development, tests and single-node deployments."""

from __future__ import annotations

from typing import Dict, List, Optional

from supportbot.models import FAQ, Conversation, ConversationStatus, Document, DocumentStatus


class InMemoryDocumentStore:
    """Dict-backed document store; iteration follows insertion order."""

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}

    async def get(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def list(self, *, status: Optional[DocumentStatus] = None, active: Optional[bool] = None) -> List[Document]:
        return [
            document.model_copy(deep=True)
            for document in self._documents.values()
            if (status is None or document.status == status) and (active is None or document.is_active == active)
        ]

    async def save(self, document: Document) -> Document:
        document.sync_counters()
        self._documents[document.id] = document.model_copy(deep=True)
        return document

    async def delete(self, document_id: str) -> bool:
        return self._documents.pop(document_id, None) is not None


class InMemoryFAQStore:
    def __init__(self) -> None:
        self._faqs: Dict[str, FAQ] = {}

    async def get(self, faq_id: str) -> Optional[FAQ]:
        faq = self._faqs.get(faq_id)
        return faq.model_copy(deep=True) if faq else None

    async def list(self, *, active: Optional[bool] = True, category: Optional[str] = None) -> List[FAQ]:
        faqs = [
            faq
            for faq in self._faqs.values()
            if (active is None or faq.is_active == active) and (category is None or faq.category == category)
        ]
        return [faq.model_copy(deep=True) for faq in _by_priority(faqs)]

    async def list_active(self, limit: int) -> List[FAQ]:
        return (await self.list(active=True))[:limit]

    async def save(self, faq: FAQ) -> FAQ:
        self._faqs[faq.id] = faq.model_copy(deep=True)
        return faq

    async def delete(self, faq_id: str) -> bool:
        return self._faqs.pop(faq_id, None) is not None


class InMemoryConversationStore:
    def __init__(self) -> None:
        self._conversations: Dict[str, Conversation] = {}

    async def get(self, conversation_id: str, owner_id: str) -> Optional[Conversation]:
        conversation = self._conversations.get(conversation_id)
        if conversation is None or conversation.user_id != owner_id:
            return None
        return conversation.model_copy(deep=True)

    async def list(self, owner_id: str) -> List[Conversation]:
        owned = [
            conversation
            for conversation in self._conversations.values()
            if conversation.user_id == owner_id and conversation.status != ConversationStatus.DELETED
        ]
        owned.sort(key=lambda item: item.updated_at, reverse=True)
        return [conversation.model_copy(deep=True) for conversation in owned]

    async def save(self, conversation: Conversation) -> Conversation:
        conversation.sync_counters()
        self._conversations[conversation.id] = conversation.model_copy(deep=True)
        return conversation


def _by_priority(faqs: List[FAQ]) -> List[FAQ]:
    return sorted(faqs, key=lambda faq: (faq.priority, faq.created_at), reverse=True)
