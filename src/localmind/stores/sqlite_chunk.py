# src/localmind/stores/sqlite_chunk.py
"""SQLite chunk store implementation with keyword-containment search."""

import re
import sqlite3
from pathlib import Path

from localmind.models import Chunk
from localmind.stores.base import ChunkStore

_COLUMNS = "id, document_id, position, start_offset, end_offset, content, origin"
_TERM_PATTERN = re.compile(r"\w+", re.UNICODE)
MIN_TERM_LENGTH = 2


def query_terms(query: str) -> list[str]:
    """Distinct lowercase word terms of a query, in first-seen order."""
    seen: dict[str, None] = {}
    for term in _TERM_PATTERN.findall(query.casefold()):
        if len(term) >= MIN_TERM_LENGTH:
            seen.setdefault(term, None)
    return list(seen)


def _fold(value: str | None) -> str:
    return value.casefold() if value else ""


def _row_to_chunk(row: tuple) -> Chunk:
    return Chunk(
        id=row[0],
        document_id=row[1],
        position=row[2],
        start=row[3],
        end=row[4],
        content=row[5],
        origin=row[6],
    )


class SQLiteChunkStore(ChunkStore):
    """SQLite-based chunk store.

    Chunk text doubles as the lexical index: ``keyword_search`` ranks chunks
    by how many distinct query terms they contain (case-insensitive).
    """

    def __init__(self, db_path: str) -> None:
        """Initialize the SQLite store."""
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    id TEXT PRIMARY KEY,
                    document_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    start_offset INTEGER NOT NULL,
                    end_offset INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    origin TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id)")
            conn.commit()

    def put_many(self, chunks: list[Chunk]) -> None:
        """Store multiple chunks, overwriting if they exist."""
        if not chunks:
            return
        with sqlite3.connect(self.db_path) as conn:
            conn.executemany(
                f"INSERT OR REPLACE INTO chunks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (c.id, c.document_id, c.position, c.start, c.end, c.content, c.origin)
                    for c in chunks
                ],
            )
            conn.commit()

    def get(self, chunk_id: str) -> Chunk | None:
        """Retrieve a chunk by ID."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE id = ?", (chunk_id,)
            ).fetchone()
            return _row_to_chunk(row) if row else None

    def get_many(self, chunk_ids: list[str]) -> list[Chunk]:
        """Retrieve multiple chunks by ID, in the order requested."""
        if not chunk_ids:
            return []
        placeholders = ",".join("?" * len(chunk_ids))
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE id IN ({placeholders})",
                chunk_ids,
            ).fetchall()
        by_id = {row[0]: _row_to_chunk(row) for row in rows}
        return [by_id[cid] for cid in chunk_ids if cid in by_id]

    def get_by_document(self, document_id: str) -> list[Chunk]:
        """Get all chunks of a document ordered by position."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE document_id = ? ORDER BY position",
                (document_id,),
            ).fetchall()
            return [_row_to_chunk(row) for row in rows]

    def delete_by_document(self, document_id: str) -> None:
        """Delete all chunks of a document."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            conn.commit()

    def count_chunks(self) -> int:
        """Count the total number of chunks in the store."""
        with sqlite3.connect(self.db_path) as conn:
            count = conn.execute("SELECT COUNT(id) FROM chunks").fetchone()
            return count[0] if count else 0

    def all_chunks(self) -> list[Chunk]:
        """Every chunk in insertion order."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM chunks ORDER BY rowid").fetchall()
            return [_row_to_chunk(row) for row in rows]

    def list_document_ids(self) -> list[str]:
        """List all document ids that have chunks."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("SELECT DISTINCT document_id FROM chunks")
            return [row[0] for row in cursor.fetchall()]

    def keyword_search(self, query: str, limit: int) -> list[tuple[Chunk, int]]:
        """Rank chunks by the number of distinct query terms they contain."""
        terms = query_terms(query)
        if not terms or limit <= 0:
            return []

        # One containment test per term; the sum is the number of matched terms
        score_expr = " + ".join(["(instr(fold(content), ?) > 0)"] * len(terms))
        sql = f"""
            SELECT {_COLUMNS}, score FROM (
                SELECT {_COLUMNS}, rowid AS rid, ({score_expr}) AS score FROM chunks
            )
            WHERE score > 0
            ORDER BY score DESC, rid ASC
            LIMIT ?
        """
        with sqlite3.connect(self.db_path) as conn:
            # SQLite lower() only folds ASCII
            conn.create_function("fold", 1, _fold, deterministic=True)
            rows = conn.execute(sql, [*terms, limit]).fetchall()
        return [(_row_to_chunk(row), int(row[7])) for row in rows]
