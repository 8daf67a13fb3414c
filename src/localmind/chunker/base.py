# src/localmind/chunker/base.py
"""Chunker abstract base class."""

from abc import ABC, abstractmethod

from localmind.models import Chunk, Document


class Chunker(ABC):
    """Splits a document into ordered chunks.

    Persistence is the caller's job; implementations only produce the sequence.
    """

    @abstractmethod
    def chunk(self, document: Document) -> list[Chunk]:
        """Split a document into chunks ordered by position.

        Raises:
            IngestionError: If the document is empty or unreadable.
        """
        ...
