# src/localmind/stores/document_registry.py
"""SQLite implementation of the document registry."""

import sqlite3
from datetime import datetime
from pathlib import Path

from localmind.models import Document, DocumentRecord
from localmind.stores.base import DocumentRegistry


class SQLiteDocumentRegistry(DocumentRegistry):
    """SQLite-backed registry of origin -> current document version."""

    def __init__(self, db_path: str) -> None:
        """Initialize the registry.

        Args:
            db_path: Path to SQLite database file
        """
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with sqlite3.connect(self._db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    origin TEXT PRIMARY KEY,
                    document_id TEXT NOT NULL,
                    content_hash TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    ingested_at TEXT NOT NULL
                )
            """)

    def get(self, origin: str) -> DocumentRecord | None:
        with sqlite3.connect(self._db_path) as conn:
            row = conn.execute(
                "SELECT origin, document_id, content_hash, version, ingested_at "
                "FROM documents WHERE origin = ?",
                (origin,),
            ).fetchone()
        if row is None:
            return None
        return DocumentRecord(
            origin=row[0],
            document_id=row[1],
            content_hash=row[2],
            version=row[3],
            ingested_at=datetime.fromisoformat(row[4]),
        )

    def put(self, document: Document) -> None:
        """Store the document as the current version after successful ingestion."""
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO documents
                    (origin, document_id, content_hash, version, ingested_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    document.origin,
                    document.id,
                    document.content_hash,
                    document.version,
                    document.ingested_at.isoformat(),
                ),
            )

    def delete(self, origin: str) -> None:
        """Remove tracking for an origin."""
        with sqlite3.connect(self._db_path) as conn:
            conn.execute("DELETE FROM documents WHERE origin = ?", (origin,))

    def list_documents(self) -> list[DocumentRecord]:
        """List all tracked origins."""
        with sqlite3.connect(self._db_path) as conn:
            rows = conn.execute(
                "SELECT origin, document_id, content_hash, version, ingested_at "
                "FROM documents ORDER BY origin"
            ).fetchall()
        return [
            DocumentRecord(
                origin=row[0],
                document_id=row[1],
                content_hash=row[2],
                version=row[3],
                ingested_at=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]
