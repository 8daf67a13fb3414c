"""Storage configurations for LocalMind."""

from localmind.configuration.storage.local import LocalStorage

__all__ = ["LocalStorage"]
