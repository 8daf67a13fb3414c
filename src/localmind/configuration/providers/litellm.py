# src/localmind/configuration/providers/litellm.py
"""LiteLLM provider configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from localmind.embedder import Embedder
    from localmind.generation import GenerationEngine
    from localmind.providers import LLMClient
    from localmind.settings import Settings


@dataclass(frozen=True)
class LiteLLMProvider:
    """Provider configuration using LiteLLM for chat and embedding calls.

    LiteLLM talks to local servers (Ollama, llama.cpp) and to hosted APIs
    through one interface, so switching between them is a model-string change.

    Args:
        llm: LiteLLM model identifier for the resident chat model.
             Examples: "ollama_chat/llama3.2", "openai/gpt-5-mini-2025-08-07"
        embedding: LiteLLM model identifier for embeddings.
                   Examples: "ollama/nomic-embed-text", "openai/text-embedding-3-small"
        api_base: Optional server URL shared by both models (e.g. "http://localhost:11434").
        embedding_dimension: Known embedding size. If None, it is probed on load.
        warmup: Send a one-token request when the model is loaded.

    Example:
        provider = LiteLLMProvider(
            llm="ollama_chat/llama3.2",
            embedding="ollama/nomic-embed-text",
        )
    """

    llm: str
    embedding: str
    api_base: str | None = None
    embedding_dimension: int | None = None
    warmup: bool = True

    def build_embedder(self, settings: Settings) -> Embedder:
        """Build a ClientEmbedder using the LiteLLM embedding client.

        Args:
            settings: Settings containing num_retries for rate limit handling.
        """
        from localmind.embedder import ClientEmbedder
        from localmind.providers.litellm import LiteLLMEmbeddingClient

        embedding_client = LiteLLMEmbeddingClient(
            model=self.embedding,
            num_retries=settings.num_retries,
            api_base=self.api_base,
        )
        return ClientEmbedder(embedding_client=embedding_client, dimension=self.embedding_dimension)

    def build_engine(self, settings: Settings) -> GenerationEngine:
        """Build a GenerationEngine whose backend is a LiteLLMClient per model."""
        from localmind.generation import GenerationEngine
        from localmind.providers.litellm import LiteLLMClient

        def client_factory(model: str) -> LLMClient:
            return LiteLLMClient(
                model=model, num_retries=settings.num_retries, api_base=self.api_base
            )

        return GenerationEngine(
            client_factory,
            default_params=settings.generation_params(),
            warmup=self.warmup,
        )

    def build_llm_client(self, settings: Settings | None = None) -> LLMClient:
        """Build a LiteLLMClient for general-purpose LLM calls.

        Args:
            settings: Optional settings containing num_retries. If None,
                     uses default retry value.
        """
        from localmind.providers.litellm import LiteLLMClient

        num_retries = settings.num_retries if settings else 3
        return LiteLLMClient(model=self.llm, num_retries=num_retries, api_base=self.api_base)
