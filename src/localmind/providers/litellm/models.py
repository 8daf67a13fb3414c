# src/localmind/providers/litellm/models.py
"""Curated model constants for the LiteLLM backend.

These are convenience constants for IDE autocomplete. Any valid LiteLLM
model string can be passed directly.

Example:
    from localmind.providers.litellm import ChatModels, LiteLLMClient

    client = LiteLLMClient(model=ChatModels.OLLAMA_LLAMA_32)
"""


class ChatModels:
    """Chat models for the generation engine (via LiteLLMClient)."""

    # Local (Ollama)
    OLLAMA_LLAMA_32 = "ollama_chat/llama3.2"
    OLLAMA_LLAMA_31_8B = "ollama_chat/llama3.1:8b"
    OLLAMA_MISTRAL = "ollama_chat/mistral"
    OLLAMA_QWEN_25_7B = "ollama_chat/qwen2.5:7b"
    OLLAMA_PHI_3 = "ollama_chat/phi3"

    # Hosted fallbacks
    GPT_5_MINI = "openai/gpt-5-mini"
    CLAUDE_HAIKU_45 = "anthropic/claude-haiku-4-5-20251001"
    GEMINI_3_FLASH = "gemini/gemini-3-flash-preview"


class EmbeddingModels:
    """Embedding models for LiteLLMEmbeddingClient / ClientEmbedder."""

    # Local (Ollama)
    OLLAMA_NOMIC = "ollama/nomic-embed-text"
    OLLAMA_MXBAI = "ollama/mxbai-embed-large"
    OLLAMA_BGE_SMALL = "ollama/bge-small-en-v1.5"

    # Hosted
    TEXT_3_SMALL = "openai/text-embedding-3-small"
    GEMINI_004 = "gemini/text-embedding-004"


class ImageModels:
    """Image generation models for LiteLLMImageProvider."""

    DALL_E_3 = "openai/dall-e-3"
    GPT_IMAGE_1 = "openai/gpt-image-1"
    STABILITY_SD3 = "stability/sd3-large"
