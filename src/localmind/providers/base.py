# src/localmind/providers/base.py
"""Abstract base classes for LLM and embedding backends."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from localmind.models import GenerationParams


class LLMClient(ABC):
    """Abstract base class for chat-completion backends.

    The generation engine consumes ``astream``; the one-shot ``complete``
    variants serve internal scoring calls and the CLI.

    Example:
        class MyLLMClient(LLMClient):
            async def astream(self, messages, params=None):
                async for piece in my_backend.stream(messages):
                    yield piece
    """

    model: str

    @abstractmethod
    def astream(
        self,
        messages: list[dict],
        params: GenerationParams | None = None,
    ) -> AsyncIterator[str]:
        """Stream a completion as text increments.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
                      Example: [{"role": "user", "content": "Hello"}]
            params: Sampling and length parameters. If None, use backend defaults.

        Returns:
            An async iterator of non-empty text increments. Closing it
            (``aclose``) releases the underlying connection.
        """
        ...

    async def acomplete(
        self,
        messages: list[dict],
        params: GenerationParams | None = None,
    ) -> str:
        """Generate a full completion (async).

        Default implementation joins the stream.
        """
        parts = [piece async for piece in self.astream(messages, params)]
        return "".join(parts)

    def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
        return None


class EmbeddingClient(ABC):
    """Abstract base class for embedding backends.

    Example:
        class MyEmbeddingClient(EmbeddingClient):
            def embed(self, texts):
                return my_api.embed_batch(texts)
    """

    model: str

    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for multiple texts.

        Args:
            texts: List of texts to embed.

        Returns:
            List of embedding vectors, one per input text.
            Order is preserved (result[i] corresponds to texts[i]).
        """
        ...
