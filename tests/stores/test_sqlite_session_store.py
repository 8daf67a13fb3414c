# tests/stores/test_sqlite_session_store.py
"""Tests for the SQLite session store."""

import os
import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from localmind.exceptions import SessionNotFoundError
from localmind.models import DEFAULT_SESSION_TITLE, Role
from localmind.stores import SessionStore, SQLiteSessionStore


@pytest.fixture
def session_store(temp_dir):
    return SQLiteSessionStore(os.path.join(temp_dir, "sessions.db"))


class TestSessions:
    def test_is_session_store(self, session_store):
        assert isinstance(session_store, SessionStore)

    def test_create_with_default_title(self, session_store):
        session = session_store.create_session()
        assert session.title == DEFAULT_SESSION_TITLE
        assert session_store.get_session(session.id) == session

    def test_get_missing(self, session_store):
        assert session_store.get_session("nope") is None

    def test_rename(self, session_store):
        session = session_store.create_session("Draft")
        renamed = session_store.rename_session(session.id, "Final")
        assert renamed.title == "Final"
        assert renamed.updated_at >= session.updated_at

    def test_rename_missing(self, session_store):
        with pytest.raises(SessionNotFoundError):
            session_store.rename_session("nope", "title")

    def test_list_most_recent_first(self, session_store):
        older = session_store.create_session("older")
        newer = session_store.create_session("newer")
        assert [s.id for s in session_store.list_sessions()] == [newer.id, older.id]

        session_store.append_message(older.id, Role.USER, "bump")
        assert [s.id for s in session_store.list_sessions()] == [older.id, newer.id]

    def test_count_sessions(self, session_store):
        session_store.create_session()
        session_store.create_session()
        assert session_store.count_sessions() == 2


class TestMessages:
    def test_sequences_start_at_one(self, session_store):
        session = session_store.create_session()
        first = session_store.append_message(session.id, Role.USER, "hi")
        second = session_store.append_message(session.id, Role.ASSISTANT, "hello")
        assert (first.sequence, second.sequence) == (1, 2)

    def test_list_in_sequence_order(self, session_store):
        session = session_store.create_session()
        for i in range(5):
            role = Role.USER if i % 2 == 0 else Role.ASSISTANT
            session_store.append_message(session.id, role, f"message {i}")

        messages = session_store.list_messages(session.id)
        assert [m.content for m in messages] == [f"message {i}" for i in range(5)]
        assert [m.sequence for m in messages] == [1, 2, 3, 4, 5]

    def test_sessions_numbered_independently(self, session_store):
        a = session_store.create_session()
        b = session_store.create_session()
        session_store.append_message(a.id, Role.USER, "a1")
        assert session_store.append_message(b.id, Role.USER, "b1").sequence == 1

    def test_interleaved_appends_keep_per_session_order(self, session_store):
        a = session_store.create_session()
        b = session_store.create_session()
        for i in range(1, 4):
            session_store.append_message(a.id, Role.USER, f"a{i}")
            session_store.append_message(b.id, Role.ASSISTANT, f"b{i}")

        for session, prefix in ((a, "a"), (b, "b")):
            messages = session_store.list_messages(session.id)
            assert [m.sequence for m in messages] == [1, 2, 3]
            assert [m.content for m in messages] == [f"{prefix}{i}" for i in range(1, 4)]

    def test_append_to_missing_session(self, session_store):
        with pytest.raises(SessionNotFoundError):
            session_store.append_message("nope", Role.USER, "hi")

    def test_concurrent_appends_get_distinct_sequences(self, session_store):
        session = session_store.create_session()
        with ThreadPoolExecutor(max_workers=3) as pool:
            messages = list(
                pool.map(
                    lambda i: session_store.append_message(session.id, Role.USER, f"m{i}"),
                    range(3),
                )
            )
        assert sorted(m.sequence for m in messages) == [1, 2, 3]

    def test_delete_cascades_to_messages(self, session_store):
        session = session_store.create_session()
        session_store.append_message(session.id, Role.USER, "hi")

        assert session_store.delete_session(session.id) is True
        assert session_store.get_session(session.id) is None
        assert session_store.list_messages(session.id) == []
        with sqlite3.connect(session_store.db_path) as conn:
            (orphans,) = conn.execute("SELECT COUNT(*) FROM messages").fetchone()
        assert orphans == 0

    def test_delete_missing(self, session_store):
        assert session_store.delete_session("nope") is False

    def test_as_chat_message(self, session_store):
        session = session_store.create_session()
        message = session_store.append_message(session.id, Role.ASSISTANT, "answer")
        assert message.as_chat_message() == {"role": "assistant", "content": "answer"}
