# src/localmind/stores/chroma.py
"""ChromaDB vector store implementation."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar
from uuid import uuid4

import chromadb
from chromadb.api.shared_system_client import SharedSystemClient

from localmind.exceptions import RetrievalError
from localmind.models import Chunk, EmbeddedChunk, RetrievalResult
from localmind.stores.base import VectorStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _metadata(embedded: EmbeddedChunk, seq: int) -> dict[str, Any]:
    chunk = embedded.chunk
    return {
        "chunk_id": chunk.id,
        "document_id": chunk.document_id,
        "ordinal": chunk.position,
        "start": chunk.start,
        "end": chunk.end,
        "origin": chunk.origin,
        "model_version": embedded.model_version,
        "seq": seq,
    }


class ChromaVectorStore(VectorStore):
    """ChromaDB-based vector store (cosine space).

    One record per chunk: the chunk id is the record id, the chunk text is
    the record document, and the metadata carries the parent document id,
    ordinal, character span, origin, model-version tag and an insertion
    sequence number used to break score ties.
    """

    def __init__(
        self,
        persist_dir: str,
        collection_name: str = "localmind",
        candidate_count: int = 20,
    ) -> None:
        """Initialize the ChromaDB store.

        Args:
            persist_dir: Directory for the Chroma database.
            collection_name: Collection holding the chunk vectors.
            candidate_count: Neighbours fetched before threshold filtering.
                Searches always fetch at least ``top_k``.
        """
        Path(persist_dir).mkdir(parents=True, exist_ok=True)
        self.candidate_count = candidate_count
        self.collection_name = collection_name
        self._insert_lock = threading.Lock()
        self._last_seq = 0
        self._dimension: int | None = None
        self._client: Any = chromadb.PersistentClient(path=persist_dir)
        self._collection: Any = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    def close(self) -> None:
        """Close the store and release resources.

        ChromaDB doesn't have an official close method, so we call the internal
        _system.stop() to release file handles. The stopped system is also
        evicted from Chroma's shared cache; otherwise a later client on the
        same path would be handed the dead system.

        See: https://github.com/chroma-core/chroma/issues/5868
        """
        self._collection = None
        system = getattr(self._client, "_system", None)
        self._client = None
        if system is None:
            return
        try:
            system.stop()
        except Exception as e:
            logger.debug("Chroma system stop failed during close: %s", e)
        cache = SharedSystemClient._identifier_to_system
        for identifier, cached in list(cache.items()):
            if cached is system:
                cache.pop(identifier, None)

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise RetrievalError("Vector store is closed or not initialized")
        return self._collection

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except RetrievalError:
            raise
        except Exception as e:
            raise RetrievalError(f"Vector store {operation} failed: {e}") from e

    def _next_seq(self) -> int:
        # Wall-clock based so ordering survives restarts; strictly increasing in-process
        self._last_seq = max(self._last_seq + 1, time.time_ns())
        return self._last_seq

    def _stored_dimension(self, collection: Any) -> int | None:
        if self._dimension is None and collection.count() > 0:
            peek = collection.peek(limit=1)
            embeddings = peek.get("embeddings")
            if embeddings is not None and len(embeddings) > 0:
                self._dimension = len(embeddings[0])
        return self._dimension

    def _check_dimension(self, collection: Any, vector: list[float]) -> None:
        expected = self._call("peek", lambda: self._stored_dimension(collection))
        if expected is not None and len(vector) != expected:
            raise RetrievalError(
                f"Vector dimension {len(vector)} does not match store dimension {expected}"
            )

    def insert(self, chunk: Chunk, vector: list[float], model_version: str) -> None:
        """Store a single chunk vector."""
        self.insert_many([EmbeddedChunk(chunk=chunk, embedding=vector, model_version=model_version)])

    def insert_many(self, embedded: list[EmbeddedChunk]) -> None:
        """Store chunk vectors in list order."""
        if not embedded:
            return
        collection = self._require_collection()

        with self._insert_lock:
            for item in embedded:
                self._check_dimension(collection, item.embedding)
                if self._dimension is None:
                    self._dimension = len(item.embedding)

            metadatas = [_metadata(e, self._next_seq()) for e in embedded]
            self._upsert(collection, embedded, metadatas)

    def _upsert(
        self, collection: Any, embedded: list[EmbeddedChunk], metadatas: list[dict[str, Any]]
    ) -> None:
        self._call(
            "insert",
            lambda: collection.upsert(
                ids=[e.chunk.id for e in embedded],
                embeddings=[e.embedding for e in embedded],
                documents=[e.chunk.content for e in embedded],
                metadatas=metadatas,
            ),
        )

    def _drop_collection(self, name: str) -> None:
        try:
            self._client.delete_collection(name=name)
        except Exception as e:
            logger.warning("Could not drop vector collection %s: %s", name, e)

    def replace_all(self, embedded: list[EmbeddedChunk]) -> None:
        """Swap in a freshly written collection holding exactly ``embedded``.

        The vectors are written to a staging collection first; the current
        collection is dropped only once every write succeeded.
        """
        current = self._require_collection()
        dimensions = {len(e.embedding) for e in embedded}
        if len(dimensions) > 1:
            raise RetrievalError(
                f"Replacement vectors have mixed dimensions: {sorted(dimensions)}"
            )

        with self._insert_lock:
            stored = self._call("get", lambda: current.get(include=["metadatas"]))
            previous_seq = {
                chunk_id: int(meta.get("seq", 0))
                for chunk_id, meta in zip(stored["ids"], stored["metadatas"] or [], strict=True)
            }

            staging_name = f"{self.collection_name}-{uuid4().hex[:12]}"
            staging = self._call(
                "create",
                lambda: self._client.create_collection(
                    name=staging_name, metadata={"hnsw:space": "cosine"}
                ),
            )
            if embedded:
                metadatas = [
                    _metadata(e, previous_seq.get(e.chunk.id) or self._next_seq())
                    for e in embedded
                ]
                try:
                    self._upsert(staging, embedded, metadatas)
                except RetrievalError:
                    self._drop_collection(staging_name)
                    raise

            self._call("delete", lambda: self._client.delete_collection(name=self.collection_name))
            self._collection = staging
            self._dimension = dimensions.pop() if dimensions else None
            self._call("rename", lambda: staging.modify(name=self.collection_name))
            logger.info("Replaced vector collection with %d vectors", len(embedded))

    def search(
        self,
        query_vector: list[float],
        top_k: int,
        similarity_threshold: float = 0.0,
    ) -> list[RetrievalResult]:
        """Search for similar chunks.

        Fetches ``max(candidate_count, top_k)`` neighbours, drops those below
        the threshold, then truncates to ``top_k``.
        """
        if top_k <= 0:
            return []
        collection = self._require_collection()
        self._check_dimension(collection, query_vector)

        total = self._call("count", collection.count)
        if total == 0:
            return []

        n_results = min(max(self.candidate_count, top_k), total)
        results = self._call(
            "search",
            lambda: collection.query(
                query_embeddings=[query_vector],
                n_results=n_results,
                include=["metadatas", "documents", "distances"],
            ),
        )

        candidates: list[tuple[float, int, Chunk]] = []
        ids = results["ids"][0]
        metadatas = results["metadatas"][0]
        documents = results["documents"][0]
        distances = results["distances"][0]

        for chunk_id, meta, text, dist in zip(ids, metadatas, documents, distances, strict=True):
            # Cosine distance lies in [0, 2]; similarity is clamped into [0, 1]
            score = min(1.0, max(0.0, 1.0 - float(dist)))
            chunk = Chunk(
                id=chunk_id,
                document_id=str(meta["document_id"]),
                position=int(meta["ordinal"]),
                start=int(meta["start"]),
                end=int(meta["end"]),
                content=text or "",
                origin=str(meta.get("origin", "")),
            )
            candidates.append((score, int(meta.get("seq", 0)), chunk))

        candidates.sort(key=lambda c: (-c[0], c[1]))
        kept = [c for c in candidates if c[0] >= similarity_threshold][:top_k]

        return [
            RetrievalResult(chunk=chunk, score=score, rank=rank)
            for rank, (score, _, chunk) in enumerate(kept, start=1)
        ]

    def delete_by_document(self, document_id: str) -> None:
        collection = self._require_collection()
        with self._insert_lock:
            self._call("delete", lambda: collection.delete(where={"document_id": document_id}))

    def count(self) -> int:
        collection = self._require_collection()
        return self._call("count", collection.count)

    def model_versions(self) -> set[str]:
        collection = self._require_collection()
        if self._call("count", collection.count) == 0:
            return set()
        results = self._call("get", lambda: collection.get(include=["metadatas"]))
        metadatas = results["metadatas"] or []
        return {str(meta["model_version"]) for meta in metadatas}
