"""Keyword retrieval over the chunks of ready, active documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from supportbot.core.config import settings
from supportbot.knowledge.retrieval.ranker import KeywordScorer
from supportbot.knowledge.stores.base import DocumentStore
from supportbot.models import DocumentStatus

logger = logging.getLogger(__name__)


@dataclass
class RetrievedChunk:
    document_id: str
    document_title: str
    content: str
    chunk_index: int
    score: int


class RetrievalEngine:
    """Rank document chunks against a free-text query.

    Retrieval is best-effort: if the document store cannot be read the engine
    logs the failure and returns no results so the chat turn can continue
    without grounding context.
    """

    def __init__(
        self,
        documents: DocumentStore,
        *,
        scorer: Optional[KeywordScorer] = None,
        default_limit: Optional[int] = None,
    ) -> None:
        self.documents = documents
        self.scorer = scorer or KeywordScorer()
        self.default_limit = default_limit or settings.RETRIEVAL_TOP_K

    async def retrieve(self, query: str, limit: Optional[int] = None) -> List[RetrievedChunk]:
        limit = self.default_limit if limit is None else limit
        keywords = self.scorer.keywords(query)
        if not keywords or limit <= 0:
            return []

        try:
            documents = await self.documents.list(status=DocumentStatus.READY, active=True)
        except Exception as exc:
            logger.error("Document store unavailable; continuing without context: %s", exc)
            return []

        scored: List[RetrievedChunk] = []
        for document in documents:
            if document.status != DocumentStatus.READY or not document.is_active:
                continue
            for chunk in sorted(document.chunks, key=lambda item: item.chunk_index):
                score = self.scorer.score(chunk.content, keywords)
                if score > 0:
                    scored.append(
                        RetrievedChunk(
                            document_id=document.id,
                            document_title=document.title,
                            content=chunk.content,
                            chunk_index=chunk.chunk_index,
                            score=score,
                        )
                    )

        # sorted() is stable, so ties keep document then chunk order.
        ranked = sorted(scored, key=lambda item: item.score, reverse=True)
        logger.debug("Retrieved %d scored chunks for %d keywords", len(ranked), len(keywords))
        return ranked[:limit]
