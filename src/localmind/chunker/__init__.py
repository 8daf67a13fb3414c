"""Document chunking."""

from localmind.chunker.base import Chunker
from localmind.chunker.window import SlidingWindowChunker, decode_text

__all__ = ["Chunker", "SlidingWindowChunker", "decode_text"]
