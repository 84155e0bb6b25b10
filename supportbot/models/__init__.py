from .conversation import (
    DEFAULT_CONVERSATION_TITLE,
    Conversation,
    ConversationMetadata,
    ConversationStatus,
    Message,
    MessageMetadata,
    MessageRole,
    SourceReference,
)
from .document import Chunk, ChunkMetadata, Document, DocumentStatus, MimeCategory
from .faq import FAQ
from .user import User

__all__ = [
    "DEFAULT_CONVERSATION_TITLE",
    "FAQ",
    "Chunk",
    "ChunkMetadata",
    "Conversation",
    "ConversationMetadata",
    "ConversationStatus",
    "Document",
    "DocumentStatus",
    "Message",
    "MessageMetadata",
    "MessageRole",
    "MimeCategory",
    "SourceReference",
    "User",
]
