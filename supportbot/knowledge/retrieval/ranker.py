"""Lexical relevance scoring for knowledge-base chunks."""

from __future__ import annotations

import re
from typing import List, Sequence

MIN_KEYWORD_LENGTH = 3


class KeywordScorer:
    """Score text by counting literal keyword occurrences.

    Keywords are the lower-cased query tokens of at least three characters
    after punctuation is stripped; each distinct keyword is counted once per
    query. A chunk's score is the sum of non-overlapping, case-insensitive
    occurrences of every keyword in its content.
    """

    strip_pattern = re.compile(r"[^\w\s]")

    def keywords(self, query: str) -> List[str]:
        tokens = self.strip_pattern.sub("", query.lower()).split()
        seen: List[str] = []
        for token in tokens:
            if len(token) >= MIN_KEYWORD_LENGTH and token not in seen:
                seen.append(token)
        return seen

    def score(self, content: str, keywords: Sequence[str]) -> int:
        lowered = content.lower()
        return sum(lowered.count(keyword) for keyword in keywords)
