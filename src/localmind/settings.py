# src/localmind/settings.py
"""Configuration management for LocalMind.

Every behavioral option the core recognises lives on one Settings model and
is validated once, when the model is constructed. Components receive the
values they need at construction time and never read configuration ad hoc.

The library does not read environment variables. Applications that want
env-based config read them at the application layer and pass values in.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from localmind.models import GenerationParams

# Bundles of settings tuned for different machines
PROFILES: dict[str, dict[str, Any]] = {
    "low_memory": {
        "context_window": 2048,
        "max_context_chars": 3000,
        "max_output_tokens": 512,
        "rerank_enabled": False,
        "max_concurrent_tasks": 1,
    },
    "quality": {
        "candidate_count": 40,
        "rerank_cutoff": 10,
        "rerank_enabled": True,
        "context_window": 8192,
        "max_context_chars": 12000,
    },
}

# Model prefixes that indicate local models (no API key, context size passed through)
LOCAL_MODEL_PREFIXES = ("ollama/", "ollama_chat/", "llama.cpp/", "local/")


def is_local_model(model: str) -> bool:
    """Return True when the model identifier points at a locally served model.

    Args:
        model: The model identifier (e.g., "ollama/llama3.2", "openai/gpt-4o")
    """
    return model.lower().startswith(LOCAL_MODEL_PREFIXES)


class Settings(BaseModel):
    """Behavioral settings for LocalMind.

    Example:
        settings = Settings(chunk_size=800, chunk_overlap=80, top_k=8)

        # Or start from a profile
        settings = Settings.with_profile("low_memory", top_k=3)
    """

    # Chunking
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=100, ge=0)
    embed_batch_size: int = Field(default=32, gt=0)

    # Vector search
    top_k: int = Field(default=5, gt=0)
    candidate_count: int = Field(default=20, gt=0)
    similarity_threshold: float = Field(default=0.3, ge=0.0, le=1.0)

    # Hybrid fusion
    rrf_k: int = Field(default=60, gt=0)
    result_count: int = Field(default=5, gt=0)

    # Reranking
    rerank_enabled: bool = True
    rerank_cutoff: int = Field(default=10, gt=0)
    rerank_batch_size: int = Field(default=5, gt=0)

    # Prompt assembly
    max_context_chars: int = Field(default=6000, gt=0)
    history_messages: int = Field(default=6, ge=0)

    # Generation
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    max_output_tokens: int = Field(default=2048, gt=0)
    context_window: int = Field(default=4096, gt=0)

    # Background tasks
    max_concurrent_tasks: int = Field(default=3, gt=0)
    task_cancel_grace: float = Field(default=5.0, ge=0.0)
    provider_priority: list[str] = Field(default_factory=list)

    # Retry configuration (LiteLLM handles exponential backoff for RateLimitError)
    num_retries: int = Field(default=3, ge=0)

    @model_validator(mode="after")
    def _check_relations(self) -> Settings:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        if self.candidate_count < self.top_k:
            raise ValueError(
                f"candidate_count ({self.candidate_count}) must be at least top_k ({self.top_k})"
            )
        if len(set(self.provider_priority)) != len(self.provider_priority):
            raise ValueError("provider_priority contains duplicate names")
        return self

    @classmethod
    def with_profile(
        cls,
        profile: Literal["low_memory", "quality"],
        **overrides: Any,
    ) -> Settings:
        """Create Settings from a named profile.

        Args:
            profile: The profile to start from.
            **overrides: Additional settings to override profile defaults.

        Returns:
            Settings instance with profile values applied.
        """
        if profile not in PROFILES:
            raise ValueError(
                f"Unknown profile '{profile}'. Available profiles: {list(PROFILES.keys())}"
            )

        profile_settings: dict[str, Any] = PROFILES[profile].copy()
        profile_settings.update(overrides)
        return cls(**profile_settings)

    def generation_params(self) -> GenerationParams:
        """Build the parameter set passed to the generation engine."""
        return GenerationParams(
            temperature=self.temperature,
            top_p=self.top_p,
            max_output_tokens=self.max_output_tokens,
            context_window=self.context_window,
        )
