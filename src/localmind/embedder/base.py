# src/localmind/embedder/base.py
"""Embedder abstract base class."""

from abc import ABC, abstractmethod

import numpy as np

from localmind.models import Chunk, EmbeddedChunk


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two vectors, 0.0 if either has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.dot(va, vb) / norm)


class Embedder(ABC):
    """Abstract base class for embedding generation.

    The embedder has an explicit lifecycle: ``embed``/``embed_batch`` raise
    EmbeddingError until ``load`` has succeeded and after ``unload``.
    Output dimensionality is constant while a model is loaded.
    """

    @abstractmethod
    def load(self) -> None:
        """Load the model and determine its dimensionality."""
        ...

    @abstractmethod
    def unload(self) -> None:
        """Release the model."""
        ...

    @property
    @abstractmethod
    def is_loaded(self) -> bool: ...

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Vector dimensionality of the loaded model."""
        ...

    @property
    @abstractmethod
    def model_version(self) -> str:
        """Tag stored next to every vector to detect model changes."""
        ...

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text."""
        ...

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for multiple texts, preserving order."""
        ...

    def embed_chunks(self, chunks: list[Chunk]) -> list[EmbeddedChunk]:
        """Embed multiple chunks (batched)."""
        if not chunks:
            return []
        embeddings = self.embed_batch([c.content for c in chunks])
        return [
            EmbeddedChunk(chunk=c, embedding=emb, model_version=self.model_version)
            for c, emb in zip(chunks, embeddings, strict=True)
        ]
