# src/localmind/loaders/__init__.py
"""File loaders for LocalMind."""

from localmind.loaders.base import Loader
from localmind.loaders.html import HTMLLoader
from localmind.loaders.registry import LoaderRegistry
from localmind.loaders.text import TextLoader

__all__ = ["HTMLLoader", "Loader", "LoaderRegistry", "TextLoader"]
