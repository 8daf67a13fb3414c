# src/localmind/models/generation.py
"""Generation engine parameter and state models."""

from enum import Enum

from pydantic import BaseModel, Field


class ModelState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    GENERATING = "generating"
    FAILED = "failed"


class GenerationParams(BaseModel):
    """Sampling and length parameters for one generation call."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    max_output_tokens: int = Field(default=2048, gt=0)
    context_window: int = Field(default=4096, gt=0)
