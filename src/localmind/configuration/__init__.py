"""Configuration objects for LocalMind.

Instead of factory methods, you pass configuration objects that know how to
build their components.

Provider configurations (build model-backed components):
- LiteLLMProvider: Uses LiteLLM for chat and embedding calls

Storage configurations (build data stores):
- LocalStorage: Chroma + SQLite under one data directory

Example:
    from localmind import LocalMind, LiteLLMProvider, LocalStorage

    mind = LocalMind(
        provider=LiteLLMProvider(llm="ollama_chat/llama3.2", embedding="ollama/nomic-embed-text"),
        storage=LocalStorage("./data"),
    )
"""

from localmind.configuration.base import ProviderConfig, StorageConfig, Stores
from localmind.configuration.providers import LiteLLMProvider
from localmind.configuration.storage import LocalStorage

__all__ = [
    "ProviderConfig",
    "StorageConfig",
    "Stores",
    "LiteLLMProvider",
    "LocalStorage",
]
