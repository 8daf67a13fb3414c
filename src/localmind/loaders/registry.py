# src/localmind/loaders/registry.py
"""Loader registry for auto-selecting file loaders."""

from localmind.exceptions import IngestionError
from localmind.loaders.base import Loader
from localmind.loaders.html import HTMLLoader
from localmind.loaders.text import TextLoader
from localmind.models import Document


class LoaderRegistry:
    """Registry for file loaders.

    Automatically selects the appropriate loader based on file extension.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._loaders: list[Loader] = []

    def register(self, loader: Loader) -> None:
        """Register a loader."""
        self._loaders.append(loader)

    def find_loader(self, path: str) -> Loader | None:
        """Find a loader that supports the given path."""
        for loader in self._loaders:
            if loader.supports(path):
                return loader
        return None

    def supports(self, path: str) -> bool:
        return self.find_loader(path) is not None

    def load(self, path: str, origin: str | None = None) -> Document:
        """Load a file using the appropriate loader.

        Raises:
            IngestionError: If no loader supports the file type or loading fails.
        """
        loader = self.find_loader(path)
        if loader is None:
            raise IngestionError(f"No loader found for: {path}")
        return loader.load(path, origin)

    @classmethod
    def default(cls) -> "LoaderRegistry":
        """Create a registry with the text/markdown and HTML loaders."""
        registry = cls()
        registry.register(TextLoader())
        registry.register(HTMLLoader())
        return registry
