"""Streaming generation engine."""

from localmind.generation.engine import GenerationEngine
from localmind.generation.stream import CancellationToken, FinishReason, TokenStream

__all__ = ["GenerationEngine", "CancellationToken", "FinishReason", "TokenStream"]
