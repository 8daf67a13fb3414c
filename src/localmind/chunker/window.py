# src/localmind/chunker/window.py
"""Fixed-size sliding window chunker."""

from localmind.chunker.base import Chunker
from localmind.exceptions import IngestionError
from localmind.models import Chunk, Document


def decode_text(raw: bytes | str, origin: str = "<bytes>") -> str:
    """Decode raw document bytes as UTF-8.

    Raises:
        IngestionError: If the bytes are not valid UTF-8.
    """
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IngestionError(f"Document {origin} is not valid UTF-8: {e}") from e


class SlidingWindowChunker(Chunker):
    """Tiles a document with windows of ``chunk_size`` characters.

    Consecutive windows share exactly ``chunk_overlap`` characters; the last
    window ends at the end of the text and may be shorter.

    Example:
        chunker = SlidingWindowChunker(chunk_size=200, chunk_overlap=50)
        chunks = chunker.chunk(Document(origin="notes.md", content="..."))
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 100) -> None:
        """Initialize the chunker.

        Args:
            chunk_size: Maximum chunk length in characters.
            chunk_overlap: Characters shared by consecutive chunks (0 <= overlap < size).

        Raises:
            ValueError: If the size/overlap pair is invalid.
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError(
                f"chunk_overlap must satisfy 0 <= overlap < size, got {chunk_overlap}"
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @property
    def step(self) -> int:
        return self.chunk_size - self.chunk_overlap

    def spans(self, length: int) -> list[tuple[int, int]]:
        """Return the (start, end) spans tiling a text of the given length."""
        spans: list[tuple[int, int]] = []
        start = 0
        while True:
            end = min(start + self.chunk_size, length)
            spans.append((start, end))
            if end >= length:
                break
            start += self.step
        return spans

    def chunk(self, document: Document) -> list[Chunk]:
        text = document.content
        if not text or not text.strip():
            raise IngestionError(f"Document {document.origin} is empty")

        return [
            Chunk(
                document_id=document.id,
                position=position,
                start=start,
                end=end,
                content=text[start:end],
                origin=document.origin,
            )
            for position, (start, end) in enumerate(self.spans(len(text)))
        ]
