from __future__ import annotations

from typing import Iterable, List

from supportbot.knowledge.retrieval.engine import RetrievedChunk
from supportbot.models import SourceReference


class CitationBuilder:
    """Map ranked chunks to prompt context and message source references."""

    separator = "\n\n"

    def context(self, chunks: Iterable[RetrievedChunk]) -> str:
        return self.separator.join(chunk.content for chunk in chunks)

    def sources(self, chunks: Iterable[RetrievedChunk]) -> List[SourceReference]:
        return [
            SourceReference(
                document_id=chunk.document_id,
                chunk_index=chunk.chunk_index,
                relevance_score=float(chunk.score),
            )
            for chunk in chunks
        ]


__all__ = ["CitationBuilder"]
