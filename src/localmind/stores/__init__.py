"""Storage for LocalMind."""

from localmind.stores.base import ChunkStore, DocumentRegistry, SessionStore, VectorStore
from localmind.stores.chroma import ChromaVectorStore
from localmind.stores.document_registry import SQLiteDocumentRegistry
from localmind.stores.sqlite_chunk import SQLiteChunkStore
from localmind.stores.sqlite_session import SQLiteSessionStore

__all__ = [
    # ABCs
    "ChunkStore",
    "DocumentRegistry",
    "SessionStore",
    "VectorStore",
    # Implementations
    "ChromaVectorStore",
    "SQLiteChunkStore",
    "SQLiteDocumentRegistry",
    "SQLiteSessionStore",
]
