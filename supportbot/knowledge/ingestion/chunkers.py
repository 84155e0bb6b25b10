"""Text chunking utilities."""

from __future__ import annotations

import math
import re
from typing import List

from supportbot.models.document import Chunk

# Overlap is configured in characters but applied as whole trailing words,
# assuming an average of five characters per word.
CHARS_PER_OVERLAP_WORD = 5


class TextChunker:
    """Sentence-aware chunking with a word-based overlap between neighbours."""

    newline_pattern = re.compile(r"\n+")
    sentence_pattern = re.compile(r"[.!?]+")

    def chunk(self, text: str, *, chunk_size: int, overlap: int) -> List[Chunk]:
        sentences = [s.strip() for s in self.sentence_pattern.split(self.newline_pattern.sub(" ", text))]
        overlap_words = self.overlap_word_count(overlap)

        chunks: List[Chunk] = []
        current = ""

        for sentence in sentences:
            if not sentence:
                continue

            # Closed content is the buffer plus "<sentence>." with the trailing space trimmed.
            if len(current) + len(sentence) + 1 > chunk_size:
                if current.strip():
                    chunks.append(Chunk(content=current.strip(), chunk_index=len(chunks)))
                seed = self._seed_for(current, sentence, overlap_words, chunk_size)
                current = f"{seed} {sentence}. " if seed else f"{sentence}. "
            else:
                current += f"{sentence}. "

        if current.strip():
            chunks.append(Chunk(content=current.strip(), chunk_index=len(chunks)))

        return chunks

    @staticmethod
    def overlap_word_count(overlap: int) -> int:
        return math.ceil(max(overlap, 0) / CHARS_PER_OVERLAP_WORD)

    @classmethod
    def _seed_for(cls, buffer: str, sentence: str, count: int, chunk_size: int) -> str:
        """Trailing overlap words to open the next chunk, dropping the oldest until it fits."""
        words = cls._tail_words(buffer, count)
        while words and len(" ".join(words)) + len(sentence) + 2 > chunk_size:
            words.pop(0)
        return " ".join(words)

    @staticmethod
    def _tail_words(buffer: str, count: int) -> List[str]:
        if count <= 0:
            return []
        return buffer.split()[-count:]
