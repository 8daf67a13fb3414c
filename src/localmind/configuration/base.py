# src/localmind/configuration/base.py
"""Protocol definitions for configuration objects.

Provider and storage configurations are factories: any frozen dataclass with
the right ``build_*`` methods satisfies the interface without inheritance.
Storage implementations themselves are ABCs (see ``localmind.stores.base``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple, Protocol, runtime_checkable

if TYPE_CHECKING:
    from localmind.embedder import Embedder
    from localmind.generation import GenerationEngine
    from localmind.providers import LLMClient
    from localmind.settings import Settings
    from localmind.stores import ChunkStore, DocumentRegistry, SessionStore, VectorStore
    from localmind.tasks import ContentStore


class Stores(NamedTuple):
    """Every persistent component a LocalMind instance needs."""

    vector_store: VectorStore
    chunk_store: ChunkStore
    document_registry: DocumentRegistry
    session_store: SessionStore
    content_store: ContentStore


@runtime_checkable
class ProviderConfig(Protocol):
    """Protocol for provider configurations.

    Provider configurations build the model-backed components:
    - Embedder: vector embeddings for semantic search
    - GenerationEngine: the single resident chat model
    - LLMClient: general-purpose completions

    Example implementation:
        @dataclass(frozen=True)
        class LiteLLMProvider:
            llm: str
            embedding: str

            def build_embedder(self, settings: Settings) -> Embedder: ...
            def build_engine(self, settings: Settings) -> GenerationEngine: ...
    """

    llm: str

    def build_embedder(self, settings: Settings) -> Embedder:
        """Build an embedder for creating vector embeddings."""
        ...

    def build_engine(self, settings: Settings) -> GenerationEngine:
        """Build the generation engine (UNLOADED; call ``load(llm)`` to start it)."""
        ...

    def build_llm_client(self, settings: Settings | None = None) -> LLMClient:
        """Build an LLM client for general-purpose completions."""
        ...


@runtime_checkable
class StorageConfig(Protocol):
    """Protocol for storage configurations.

    Example implementation:
        @dataclass(frozen=True)
        class LocalStorage:
            data_dir: str

            def build_stores(self, settings: Settings | None = None) -> Stores: ...
    """

    def build_stores(self, settings: Settings | None = None) -> Stores:
        """Build every storage component."""
        ...
