# src/localmind/configuration/storage/local.py
"""Local filesystem storage configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from localmind.configuration.base import Stores

if TYPE_CHECKING:
    from localmind.settings import Settings


@dataclass(frozen=True)
class LocalStorage:
    """Local filesystem storage using Chroma and SQLite.

    All data is persisted to the specified directory:
    - chroma/: Chunk vectors (ChromaDB)
    - chunks.db: Chunks and the keyword index (SQLite)
    - documents.db: Origin versions and content hashes (SQLite)
    - sessions.db: Chat sessions and messages (SQLite)
    - content/: Outputs of background generation tasks

    Args:
        data_dir: Base directory for all storage files.
                  Created if it doesn't exist.

    Example:
        storage = LocalStorage("./my_data")
    """

    data_dir: str

    def build_stores(self, settings: Settings | None = None) -> Stores:
        """Build all storage components.

        Creates the data directory if it doesn't exist.

        Args:
            settings: Optional settings; ``candidate_count`` sizes vector searches.
        """
        from localmind.stores import (
            ChromaVectorStore,
            SQLiteChunkStore,
            SQLiteDocumentRegistry,
            SQLiteSessionStore,
        )
        from localmind.tasks import LocalContentStore

        Path(self.data_dir).mkdir(parents=True, exist_ok=True)

        candidate_count = settings.candidate_count if settings else 20
        return Stores(
            vector_store=ChromaVectorStore(
                os.path.join(self.data_dir, "chroma"), candidate_count=candidate_count
            ),
            chunk_store=SQLiteChunkStore(os.path.join(self.data_dir, "chunks.db")),
            document_registry=SQLiteDocumentRegistry(os.path.join(self.data_dir, "documents.db")),
            session_store=SQLiteSessionStore(os.path.join(self.data_dir, "sessions.db")),
            content_store=LocalContentStore(os.path.join(self.data_dir, "content")),
        )
