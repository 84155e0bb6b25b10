import os

os.environ.setdefault("LLM_PROVIDER", "echo")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest

from supportbot.knowledge.stores.memory import (
    InMemoryConversationStore,
    InMemoryDocumentStore,
    InMemoryFAQStore,
)
from supportbot.models import Chunk, Document, DocumentStatus, MimeCategory


def make_document(title="Refunds", chunks=(), status=DocumentStatus.READY, is_active=True, **overrides):
    payload = dict(
        title=title,
        filename=f"doc-{title.lower()}.txt",
        original_name=f"{title.lower()}.txt",
        mime_type=MimeCategory.TEXT,
        file_size=10,
        file_path=f"/tmp/{title.lower()}.txt",
        uploaded_by="admin-1",
        status=status,
        is_active=is_active,
        chunks=[Chunk(content=content, chunk_index=index) for index, content in enumerate(chunks)],
    )
    payload.update(overrides)
    return Document(**payload)


def numbered_sentence(index):
    return " ".join(f"{index:02d}w{word}" for word in range(10))


def handbook_text():
    """Twenty-three numbered sentences, 1200 characters in total."""
    sentences = [numbered_sentence(index) for index in range(1, 24)]
    sentences[-1] = sentences[-1] + " " + "x" * 27
    return ". ".join(sentences) + "."


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def faq_store():
    return InMemoryFAQStore()


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()
