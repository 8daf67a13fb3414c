# src/localmind/providers/litellm/client.py
"""LiteLLM client implementations for chat and embedding APIs."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import litellm

from localmind.models import GenerationParams
from localmind.providers.base import EmbeddingClient, LLMClient
from localmind.providers.litellm.models import ChatModels, EmbeddingModels
from localmind.settings import is_local_model

logger = logging.getLogger(__name__)


class LiteLLMClient(LLMClient):
    """LiteLLM-based chat client.

    Works with local servers (Ollama, llama.cpp) as well as any hosted model
    LiteLLM supports. For local models the context window is passed through
    as ``num_ctx``.

    Example:
        from localmind.providers.litellm import LiteLLMClient, ChatModels

        client = LiteLLMClient(model=ChatModels.OLLAMA_LLAMA_32)
        async for piece in client.astream([{"role": "user", "content": "Hello"}]):
            print(piece, end="")
    """

    def __init__(
        self,
        model: str = ChatModels.OLLAMA_LLAMA_32,
        num_retries: int = 3,
        api_base: str | None = None,
        api_key: str | None = None,
    ) -> None:
        """Initialize the LiteLLM client.

        Args:
            model: LiteLLM model identifier.
                   Examples: "ollama_chat/llama3.2", "openai/gpt-5-mini"
            num_retries: Number of retries on rate limit errors. LiteLLM handles
                        exponential backoff automatically. Default: 3.
            api_base: Optional server URL (e.g. "http://localhost:11434").
            api_key: Optional API key. If None, LiteLLM's own lookup applies.
        """
        self.model = model
        self.num_retries = num_retries
        self.api_base = api_base
        self.api_key = api_key

    def _completion_kwargs(
        self,
        messages: list[dict],
        params: GenerationParams | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "drop_params": True,
            "num_retries": self.num_retries,
        }
        if self.api_base is not None:
            kwargs["api_base"] = self.api_base
        if self.api_key is not None:
            kwargs["api_key"] = self.api_key
        if params is not None:
            kwargs["temperature"] = params.temperature
            kwargs["top_p"] = params.top_p
            kwargs["max_tokens"] = params.max_output_tokens
            if is_local_model(self.model):
                kwargs["num_ctx"] = params.context_window
        return kwargs

    async def astream(
        self,
        messages: list[dict],
        params: GenerationParams | None = None,
    ) -> AsyncIterator[str]:
        """Stream a completion using LiteLLM (async)."""
        response = await litellm.acompletion(
            **self._completion_kwargs(messages, params), stream=True
        )
        try:
            async for part in response:
                if not part.choices:
                    continue
                content = part.choices[0].delta.content
                if content:
                    yield content
        finally:
            close = getattr(response, "aclose", None)
            if close is not None:
                await close()

    async def acomplete(
        self,
        messages: list[dict],
        params: GenerationParams | None = None,
    ) -> str:
        """Generate a completion using LiteLLM (async)."""
        response = await litellm.acompletion(**self._completion_kwargs(messages, params))

        if not response.choices:
            raise ValueError(f"LLM returned no choices for model {self.model}")
        content = response.choices[0].message.content
        if content is None:
            raise ValueError(f"LLM returned None content for model {self.model}")
        return str(content)


class LiteLLMEmbeddingClient(EmbeddingClient):
    """LiteLLM-based embedding client.

    Example:
        from localmind.providers.litellm import LiteLLMEmbeddingClient, EmbeddingModels

        client = LiteLLMEmbeddingClient(model=EmbeddingModels.OLLAMA_NOMIC)
        embeddings = client.embed(["Hello world", "How are you?"])
    """

    def __init__(
        self,
        model: str = EmbeddingModels.OLLAMA_NOMIC,
        num_retries: int = 3,
        api_base: str | None = None,
    ) -> None:
        """Initialize the LiteLLM embedding client.

        Args:
            model: LiteLLM embedding model identifier.
                   Examples: "ollama/nomic-embed-text", "openai/text-embedding-3-small"
            num_retries: Number of retries on rate limit errors. Default: 3.
            api_base: Optional server URL for local embedding servers.
        """
        self.model = model
        self.num_retries = num_retries
        self.api_base = api_base

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings using LiteLLM."""
        if not texts:
            return []

        kwargs: dict[str, Any] = {
            "model": self.model,
            "input": texts,
            "num_retries": self.num_retries,
        }
        if self.api_base is not None:
            kwargs["api_base"] = self.api_base

        response = litellm.embedding(**kwargs)
        # Sort by index to maintain order
        sorted_data = sorted(response.data, key=lambda x: x["index"])
        return [item["embedding"] for item in sorted_data]
