# src/localmind/reranker/base.py
"""Reranker abstract base class."""

from abc import ABC, abstractmethod

from localmind.models import RankedChunk


class Reranker(ABC):
    """Re-scores a short candidate list against the query.

    Implementations never raise for backend problems: when scoring is not
    possible they return the candidates in their original order.
    """

    @abstractmethod
    async def rerank(self, query: str, candidates: list[RankedChunk]) -> list[RankedChunk]:
        """Return the candidates re-sorted by relevance, ranks renumbered from 1."""
        ...


class NoopReranker(Reranker):
    """Keeps the retriever's order."""

    async def rerank(self, query: str, candidates: list[RankedChunk]) -> list[RankedChunk]:
        return list(candidates)
