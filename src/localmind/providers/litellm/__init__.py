"""LiteLLM backend clients for LocalMind.

- LiteLLMClient: streaming chat completion using LiteLLM
- LiteLLMEmbeddingClient: embeddings using LiteLLM
- ChatModels / EmbeddingModels / ImageModels: curated model constants
"""

from localmind.providers.litellm.client import LiteLLMClient, LiteLLMEmbeddingClient
from localmind.providers.litellm.models import ChatModels, EmbeddingModels, ImageModels

__all__ = [
    # Model constants
    "ChatModels",
    "EmbeddingModels",
    "ImageModels",
    # Clients
    "LiteLLMClient",
    "LiteLLMEmbeddingClient",
]
