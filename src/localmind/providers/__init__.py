"""LLM and embedding backends for LocalMind.

Usage:
    from localmind.providers import LLMClient, EmbeddingClient
    from localmind.providers.litellm import LiteLLMClient, ChatModels
"""

from localmind.providers.base import EmbeddingClient, LLMClient
from localmind.providers.litellm import (
    ChatModels,
    EmbeddingModels,
    ImageModels,
    LiteLLMClient,
    LiteLLMEmbeddingClient,
)

__all__ = [
    # ABCs
    "LLMClient",
    "EmbeddingClient",
    # Model constants
    "ChatModels",
    "EmbeddingModels",
    "ImageModels",
    # LiteLLM clients
    "LiteLLMClient",
    "LiteLLMEmbeddingClient",
]
