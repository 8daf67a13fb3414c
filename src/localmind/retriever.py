# src/localmind/retriever.py
"""Hybrid retrieval pipeline for LocalMind."""

from __future__ import annotations

import asyncio
import logging
import sqlite3

from localmind.embedder import Embedder
from localmind.exceptions import EmbeddingError, RetrievalError
from localmind.models import Chunk, RankedChunk, RetrievalResult
from localmind.stores import ChunkStore, VectorStore

logger = logging.getLogger(__name__)

DEFAULT_RRF_K = 60


def reciprocal_rank_fusion(
    semantic: list[RetrievalResult],
    lexical: list[Chunk],
    k: int = DEFAULT_RRF_K,
    limit: int | None = None,
) -> list[RankedChunk]:
    """Fuse a semantic and a lexical ranking with Reciprocal Rank Fusion.

    Each chunk scores ``1/(k + rank)`` for every list it appears in (ranks are
    1-based positions in that list). Chunks are deduplicated by id and ordered
    by fused score descending; equal scores keep first-appearance order,
    semantic list first.

    Args:
        semantic: Vector search results in rank order.
        lexical: Keyword search hits in rank order.
        k: RRF smoothing constant.
        limit: Maximum number of fused results (None = all).
    """
    entries: dict[str, RankedChunk] = {}
    first_seen: dict[str, int] = {}

    def entry_for(chunk: Chunk) -> RankedChunk:
        if chunk.id not in entries:
            first_seen[chunk.id] = len(first_seen)
            entries[chunk.id] = RankedChunk(chunk=chunk, score=0.0, rank=1)
        return entries[chunk.id]

    for rank, result in enumerate(semantic, start=1):
        entry = entry_for(result.chunk)
        if entry.semantic_rank is None:
            entry.semantic_rank = rank
            entry.similarity = result.score
            entry.score += 1.0 / (k + rank)

    for rank, chunk in enumerate(lexical, start=1):
        entry = entry_for(chunk)
        if entry.lexical_rank is None:
            entry.lexical_rank = rank
            entry.score += 1.0 / (k + rank)

    ordered = sorted(entries.values(), key=lambda e: (-e.score, first_seen[e.chunk.id]))
    if limit is not None:
        ordered = ordered[:limit]
    for rank, entry in enumerate(ordered, start=1):
        entry.rank = rank
    return ordered


class HybridRetriever:
    """Combines vector similarity and keyword containment into one ranking.

    If one of the two searches fails, the other one is used alone; only when
    both fail does ``retrieve`` raise RetrievalError.
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        chunk_store: ChunkStore,
        top_k: int = 5,
        similarity_threshold: float = 0.0,
        rrf_k: int = DEFAULT_RRF_K,
        result_count: int = 5,
    ) -> None:
        """Initialize the retriever.

        Args:
            embedder: Embedder for query embedding
            vector_store: Store for semantic search
            chunk_store: Chunk store providing the lexical index
            top_k: Length of each sub-search ranking
            similarity_threshold: Minimum cosine similarity for semantic hits
            rrf_k: Reciprocal Rank Fusion constant
            result_count: Number of fused results to return
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.chunk_store = chunk_store
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold
        self.rrf_k = rrf_k
        self.result_count = result_count

    def semantic_search(self, query: str) -> list[RetrievalResult]:
        """Vector search for the query (blocking)."""
        try:
            query_vector = self.embedder.embed(query)
        except EmbeddingError as e:
            raise RetrievalError(f"Cannot embed query: {e}") from e
        return self.vector_store.search(query_vector, self.top_k, self.similarity_threshold)

    def lexical_search(self, query: str) -> list[Chunk]:
        """Keyword-containment search for the query (blocking)."""
        try:
            hits = self.chunk_store.keyword_search(query, self.top_k)
        except sqlite3.Error as e:
            raise RetrievalError(f"Lexical index unavailable: {e}") from e
        return [chunk for chunk, _ in hits]

    async def retrieve(self, query: str) -> list[RankedChunk]:
        """Run both searches concurrently and fuse their rankings.

        Returns:
            Fused results, at most ``result_count`` long.

        Raises:
            RetrievalError: If both the semantic and the lexical search failed.
        """
        semantic_outcome, lexical_outcome = await asyncio.gather(
            asyncio.to_thread(self.semantic_search, query),
            asyncio.to_thread(self.lexical_search, query),
            return_exceptions=True,
        )

        semantic: list[RetrievalResult] = []
        lexical: list[Chunk] = []
        errors: list[BaseException] = []

        if isinstance(semantic_outcome, BaseException):
            if not isinstance(semantic_outcome, RetrievalError):
                raise semantic_outcome
            logger.warning("Semantic search failed, using keyword search only: %s", semantic_outcome)
            errors.append(semantic_outcome)
        else:
            semantic = semantic_outcome

        if isinstance(lexical_outcome, BaseException):
            if not isinstance(lexical_outcome, RetrievalError):
                raise lexical_outcome
            logger.warning("Keyword search failed, using semantic search only: %s", lexical_outcome)
            errors.append(lexical_outcome)
        else:
            lexical = lexical_outcome

        if len(errors) == 2:
            raise RetrievalError(
                f"Both retrieval modalities failed: {errors[0]}; {errors[1]}"
            ) from errors[0]

        results = reciprocal_rank_fusion(semantic, lexical, k=self.rrf_k, limit=self.result_count)
        logger.debug(
            "Retrieved %d results (%d semantic, %d lexical) for query %r",
            len(results),
            len(semantic),
            len(lexical),
            query,
        )
        return results
