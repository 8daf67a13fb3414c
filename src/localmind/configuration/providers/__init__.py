"""Provider configurations for LocalMind."""

from localmind.configuration.providers.litellm import LiteLLMProvider

__all__ = ["LiteLLMProvider"]
