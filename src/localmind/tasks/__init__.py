"""Background generation tasks with provider failover."""

from localmind.tasks.content_store import ContentStore, LocalContentStore
from localmind.tasks.fallback import ChainOutcome, FallbackChain, skip_reason
from localmind.tasks.providers import (
    HTTPVideoProvider,
    LiteLLMImageProvider,
    LiteLLMTextProvider,
    Provider,
    map_litellm_error,
)
from localmind.tasks.queue import TaskQueue
from localmind.tasks.registry import ProviderRegistry

__all__ = [
    "ChainOutcome",
    "ContentStore",
    "FallbackChain",
    "HTTPVideoProvider",
    "LiteLLMImageProvider",
    "LiteLLMTextProvider",
    "LocalContentStore",
    "Provider",
    "ProviderRegistry",
    "TaskQueue",
    "map_litellm_error",
    "skip_reason",
]
