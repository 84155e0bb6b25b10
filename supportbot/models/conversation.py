"""Conversation and message data model definitions."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CONVERSATION_TITLE = "New Conversation"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class SourceReference(BaseModel):
    document_id: str
    chunk_index: int
    relevance_score: float


class MessageMetadata(BaseModel):
    tokens_used: Optional[int] = None
    model: Optional[str] = None
    processing_time_ms: Optional[int] = None
    sources: List[SourceReference] = Field(default_factory=list)


class Message(BaseModel):
    """A single turn; frozen once built so appended history cannot be rewritten."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    metadata: Optional[MessageMetadata] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ConversationMetadata(BaseModel):
    total_tokens: int = 0
    message_count: int = 0
    sentiment: Optional[Literal["positive", "neutral", "negative"]] = None
    topics: List[str] = Field(default_factory=list)
    resolved: bool = False


class Conversation(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    title: str = DEFAULT_CONVERSATION_TITLE
    messages: List[Message] = Field(default_factory=list)
    status: ConversationStatus = ConversationStatus.ACTIVE
    metadata: ConversationMetadata = Field(default_factory=ConversationMetadata)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def append(self, message: Message) -> Message:
        self.messages.append(message)
        return message

    def recent_messages(self, window: int) -> List[Message]:
        return self.messages[-window:] if window > 0 else []

    def has_default_title(self, default: str = DEFAULT_CONVERSATION_TITLE) -> bool:
        return self.title == default

    def generate_title(self, max_length: int = 50) -> str:
        """Derive the title from the first user message, truncating with an ellipsis."""

        first_user = next((m for m in self.messages if m.role == MessageRole.USER), None)
        if first_user is not None:
            self.title = derive_title(first_user.content, max_length)
        return self.title

    def clear(self, default_title: str = DEFAULT_CONVERSATION_TITLE) -> None:
        self.messages = []
        self.metadata.total_tokens = 0
        self.title = default_title
        self.sync_counters()

    def sync_counters(self) -> None:
        self.metadata.message_count = len(self.messages)
        self.updated_at = datetime.utcnow()


def derive_title(content: str, max_length: int = 50) -> str:
    if len(content) > max_length:
        return content[:max_length] + "..."
    return content
