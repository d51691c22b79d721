"""
Keyword retriever over knowledge base chunks.
"""

from dataclasses import dataclass
from typing import Sequence

FULL_QUERY_SCORE = 10
KEYWORD_SCORE = 2
REFERENCE_SCORE = 1
MIN_KEYWORD_LENGTH = 4
REFERENCE_MARKERS = ("Table", "$")


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk with its relevance score and position in the knowledge base."""
    chunk: str
    score: int
    position: int


def query_keywords(query: str) -> list[str]:
    """Lowercased whitespace tokens longer than three characters."""
    return [w for w in query.lower().split() if len(w) >= MIN_KEYWORD_LENGTH]


def score_chunk(chunk: str, query: str) -> int:
    """
    Score a chunk against a query.
    
    +10 when the whole query appears in the chunk, +2 per keyword found,
    +1 when the chunk carries a table or a dollar amount. Matching is
    case-insensitive substring matching, except the table/dollar markers.
    """
    query_lower = query.lower()
    chunk_lower = chunk.lower()
    
    score = 0
    if query_lower in chunk_lower:
        score += FULL_QUERY_SCORE
    for keyword in query_keywords(query):
        if keyword in chunk_lower:
            score += KEYWORD_SCORE
    if any(marker in chunk for marker in REFERENCE_MARKERS):
        score += REFERENCE_SCORE
    return score


class Retriever:
    """Ranks knowledge base chunks for a query."""
    
    def __init__(self, chunks: Sequence[str]):
        self.chunks = list(chunks)
    
    def rank(self, query: str) -> list[ScoredChunk]:
        """All chunks, highest score first; equal scores keep document order."""
        scored = [
            ScoredChunk(chunk, score_chunk(chunk, query), position)
            for position, chunk in enumerate(self.chunks)
        ]
        return sorted(scored, key=lambda item: -item.score)
    
    def find_relevant(self, query: str, max_chunks: int = 5) -> list[str]:
        """
        Return the top ``max_chunks`` chunks for a query.
        
        There is no minimum score: zero-scoring chunks fill the remaining
        slots when too few chunks match.
        """
        if max_chunks <= 0:
            return []
        return [item.chunk for item in self.rank(query)[:max_chunks]]


def find_relevant(chunks: Sequence[str], query: str, max_chunks: int = 5) -> list[str]:
    """Convenience wrapper around ``Retriever.find_relevant``."""
    return Retriever(chunks).find_relevant(query, max_chunks)
