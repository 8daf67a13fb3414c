# src/localmind/stores/sqlite_session.py
"""SQLite session store implementation."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from localmind.exceptions import SessionNotFoundError
from localmind.models import DEFAULT_SESSION_TITLE, Message, Role, Session
from localmind.stores.base import SessionStore


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _row_to_session(row: tuple) -> Session:
    return Session(
        id=row[0],
        title=row[1],
        created_at=datetime.fromisoformat(row[2]),
        updated_at=datetime.fromisoformat(row[3]),
    )


def _row_to_message(row: tuple) -> Message:
    return Message(
        id=row[0],
        session_id=row[1],
        role=Role(row[2]),
        content=row[3],
        sequence=row[4],
        created_at=datetime.fromisoformat(row[5]),
    )


class SQLiteSessionStore(SessionStore):
    """SQLite-based session store.

    Messages reference their session with ``ON DELETE CASCADE``; foreign keys
    are enabled on every connection. Sequence numbers are assigned inside a
    ``BEGIN IMMEDIATE`` transaction under a per-session lock, so concurrent
    appends to one session never collide and never reuse a number.
    """

    def __init__(self, db_path: str) -> None:
        """Initialize the SQLite store."""
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=30.0)
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
                    content TEXT NOT NULL,
                    sequence INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE,
                    UNIQUE (session_id, sequence)
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_session "
                "ON messages(session_id, sequence)"
            )

    def _session_lock(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
            return lock

    def create_session(self, title: str | None = None) -> Session:
        now = _now()
        session_id = str(uuid4())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO sessions (id, title, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (session_id, title or DEFAULT_SESSION_TITLE, now, now),
            )
        return _row_to_session((session_id, title or DEFAULT_SESSION_TITLE, now, now))

    def get_session(self, session_id: str) -> Session | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, title, created_at, updated_at FROM sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
        return _row_to_session(row) if row else None

    def list_sessions(self) -> list[Session]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, title, created_at, updated_at FROM sessions "
                "ORDER BY updated_at DESC, rowid DESC"
            ).fetchall()
        return [_row_to_session(row) for row in rows]

    def rename_session(self, session_id: str, title: str) -> Session:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE sessions SET title = ?, updated_at = ? WHERE id = ?",
                (title, _now(), session_id),
            )
            if cursor.rowcount == 0:
                raise SessionNotFoundError(f"Session {session_id} not found")
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def delete_session(self, session_id: str) -> bool:
        with self._session_lock(session_id), self._connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            deleted = cursor.rowcount > 0
        with self._locks_guard:
            self._locks.pop(session_id, None)
        return deleted

    def append_message(self, session_id: str, role: Role, content: str) -> Message:
        role = Role(role)
        message_id = str(uuid4())
        now = _now()
        with self._session_lock(session_id), self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                exists = conn.execute(
                    "SELECT 1 FROM sessions WHERE id = ?", (session_id,)
                ).fetchone()
                if exists is None:
                    raise SessionNotFoundError(f"Session {session_id} not found")
                row = conn.execute(
                    "SELECT COALESCE(MAX(sequence), 0) FROM messages WHERE session_id = ?",
                    (session_id,),
                ).fetchone()
                sequence = int(row[0]) + 1
                conn.execute(
                    """
                    INSERT INTO messages (id, session_id, role, content, sequence, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (message_id, session_id, role.value, content, sequence, now),
                )
                conn.execute(
                    "UPDATE sessions SET updated_at = ? WHERE id = ?", (now, session_id)
                )
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        return _row_to_message((message_id, session_id, role.value, content, sequence, now))

    def list_messages(self, session_id: str) -> list[Message]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, session_id, role, content, sequence, created_at FROM messages "
                "WHERE session_id = ? ORDER BY sequence",
                (session_id,),
            ).fetchall()
        return [_row_to_message(row) for row in rows]

    def count_sessions(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(id) FROM sessions").fetchone()
        return row[0] if row else 0
