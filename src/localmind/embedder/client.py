# src/localmind/embedder/client.py
"""Client-based embedder implementation."""

import logging

import numpy as np

from localmind.embedder.base import Embedder
from localmind.exceptions import EmbeddingError
from localmind.providers.base import EmbeddingClient

logger = logging.getLogger(__name__)

PROBE_TEXT = "dimension probe"


class ClientEmbedder(Embedder):
    """Embedder that uses an EmbeddingClient for generating embeddings.

    Every vector coming back from the client is checked for the expected
    dimensionality and finite values before it is handed out.

    Example:
        from localmind.providers.litellm import LiteLLMEmbeddingClient
        from localmind.embedder import ClientEmbedder

        embedder = ClientEmbedder(LiteLLMEmbeddingClient(model="ollama/nomic-embed-text"))
        embedder.load()
        vector = embedder.embed("hello")
    """

    def __init__(self, embedding_client: EmbeddingClient, dimension: int | None = None) -> None:
        """Initialize the embedder.

        Args:
            embedding_client: Any EmbeddingClient implementation.
            dimension: Known dimensionality. If None, ``load`` probes the client.
        """
        self._client = embedding_client
        self._expected_dimension = dimension
        self._dimension: int | None = None
        self._loaded = False

    def load(self) -> None:
        if self._loaded:
            return
        dimension = self._expected_dimension
        if dimension is None:
            probe = self._call([PROBE_TEXT])
            dimension = len(probe[0])
        if dimension <= 0:
            raise EmbeddingError(f"Embedding model {self.model_version} reported no dimensions")
        self._dimension = dimension
        self._loaded = True
        logger.info("Loaded embedding model %s (%d dims)", self.model_version, dimension)

    def unload(self) -> None:
        if self._loaded:
            logger.info("Unloaded embedding model %s", self.model_version)
        self._loaded = False
        self._dimension = None

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            raise EmbeddingError("Embedding model is not loaded")
        return self._dimension

    @property
    def model_version(self) -> str:
        return getattr(self._client, "model", type(self._client).__name__)

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not self._loaded:
            raise EmbeddingError("Embedding model is not loaded")
        if not texts:
            return []

        vectors = self._call(texts)
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedding client returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return [self._validate(v) for v in vectors]

    def _call(self, texts: list[str]) -> list[list[float]]:
        try:
            return self._client.embed(texts)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding model {self.model_version} failed: {e}") from e

    def _validate(self, vector: list[float]) -> list[float]:
        array = np.asarray(vector, dtype=np.float64)
        if array.ndim != 1 or array.shape[0] != self._dimension:
            raise EmbeddingError(
                f"Expected a {self._dimension}-dimensional vector, got shape {array.shape}"
            )
        if not np.all(np.isfinite(array)):
            raise EmbeddingError("Embedding contains non-finite values")
        return array.tolist()
