"""Embedding generation."""

from localmind.embedder.base import Embedder, cosine_similarity
from localmind.embedder.client import ClientEmbedder

__all__ = ["Embedder", "ClientEmbedder", "cosine_similarity"]
