# src/localmind/loaders/base.py
"""Loader abstract base class."""

from abc import ABC, abstractmethod

from localmind.models import Document


class Loader(ABC):
    """Abstract base class for file loading."""

    @abstractmethod
    def load(self, path: str, origin: str | None = None) -> Document:
        """Load a file into a Document.

        Args:
            path: Path to the file to load
            origin: Optional origin identifier. If not provided,
                    the absolute path is used.

        Raises:
            IngestionError: If the file is missing, unreadable or not valid UTF-8.
        """
        ...

    @abstractmethod
    def supports(self, path: str) -> bool:
        """Check if this loader supports the given path."""
        ...
