"""Wiring of stores, ingestion, retrieval and chat services for the API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from supportbot.core.config import Settings, settings
from supportbot.core.database import database_manager
from supportbot.knowledge.faqs import FAQService
from supportbot.knowledge.ingestion.pipeline import DocumentProcessor, ProcessingQueue
from supportbot.knowledge.ingestion.service import DocumentService
from supportbot.knowledge.ingestion.storage import FileStorage
from supportbot.knowledge.retrieval.engine import RetrievalEngine
from supportbot.knowledge.stores import memory, mongo
from supportbot.knowledge.stores.base import ConversationStore, DocumentStore, FAQStore
from supportbot.orchestration.chat import ChatOrchestrator
from supportbot.orchestration.prompt import PromptComposer
from supportbot.utils.llm import LLMProvider, build_provider

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    documents: DocumentStore
    faqs: FAQStore
    conversations: ConversationStore
    processing: ProcessingQueue
    document_service: DocumentService
    faq_service: FAQService
    orchestrator: ChatOrchestrator

    async def start(self) -> None:
        await self.processing.start()

    async def stop(self) -> None:
        await self.processing.stop()


def build_stores(config: Settings = settings) -> Tuple[DocumentStore, FAQStore, ConversationStore]:
    if config.STORE_BACKEND == "mongo":
        database = database_manager.database
        return (
            mongo.MongoDocumentStore(database),
            mongo.MongoFAQStore(database),
            mongo.MongoConversationStore(database),
        )
    return memory.InMemoryDocumentStore(), memory.InMemoryFAQStore(), memory.InMemoryConversationStore()


def build_container(
    config: Settings = settings,
    *,
    provider: Optional[LLMProvider] = None,
    storage: Optional[FileStorage] = None,
    documents: Optional[DocumentStore] = None,
    faqs: Optional[FAQStore] = None,
    conversations: Optional[ConversationStore] = None,
) -> ServiceContainer:
    if documents is None or faqs is None or conversations is None:
        default_documents, default_faqs, default_conversations = build_stores(config)
        documents = documents or default_documents
        faqs = faqs or default_faqs
        conversations = conversations or default_conversations

    processor = DocumentProcessor(
        documents=documents,
        chunk_size=config.CHUNK_SIZE,
        chunk_overlap=config.CHUNK_OVERLAP,
    )
    processing = ProcessingQueue(processor)

    orchestrator = ChatOrchestrator(
        conversations=conversations,
        faqs=faqs,
        retrieval=RetrievalEngine(documents, default_limit=config.RETRIEVAL_TOP_K),
        provider=provider or build_provider(config),
        composer=PromptComposer(max_faqs=config.FAQ_CONTEXT_LIMIT),
        retrieval_limit=config.RETRIEVAL_TOP_K,
        faq_limit=config.FAQ_CONTEXT_LIMIT,
        history_window=config.HISTORY_WINDOW,
        default_title=config.DEFAULT_CONVERSATION_TITLE,
        title_max_length=config.TITLE_MAX_LENGTH,
    )

    logger.info("Service container built (store backend=%s)", config.STORE_BACKEND)
    return ServiceContainer(
        documents=documents,
        faqs=faqs,
        conversations=conversations,
        processing=processing,
        document_service=DocumentService(
            documents=documents,
            storage=storage or FileStorage(config.UPLOAD_DIR),
            queue=processing,
            max_upload_bytes=config.MAX_UPLOAD_BYTES,
        ),
        faq_service=FAQService(faqs),
        orchestrator=orchestrator,
    )
