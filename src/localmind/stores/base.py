# src/localmind/stores/base.py
"""Abstract base classes for storage."""

from abc import ABC, abstractmethod

from localmind.models import (
    Chunk,
    Document,
    DocumentRecord,
    EmbeddedChunk,
    Message,
    RetrievalResult,
    Role,
    Session,
)


class VectorStore(ABC):
    """Abstract base class for chunk vector storage.

    All vectors in one store share the same dimensionality. Inserts are
    serialized; searches may run concurrently.
    """

    @abstractmethod
    def insert(self, chunk: Chunk, vector: list[float], model_version: str) -> None:
        """Store the vector for a chunk."""
        ...

    @abstractmethod
    def insert_many(self, embedded: list[EmbeddedChunk]) -> None:
        """Store vectors for multiple chunks, preserving list order as insertion order."""
        ...

    @abstractmethod
    def search(
        self,
        query_vector: list[float],
        top_k: int,
        similarity_threshold: float = 0.0,
    ) -> list[RetrievalResult]:
        """Nearest-neighbour search by cosine similarity.

        Returns at most ``top_k`` results, all scoring at least
        ``similarity_threshold``, ordered by score descending with ties
        broken by insertion order. Never padded.
        """
        ...

    @abstractmethod
    def replace_all(self, embedded: list[EmbeddedChunk]) -> None:
        """Atomically replace every stored vector with ``embedded``.

        The new vectors may have a different dimensionality. If writing them
        fails, the previous contents stay in place. Chunks that were already
        stored keep their insertion order.
        """
        ...

    @abstractmethod
    def delete_by_document(self, document_id: str) -> None:
        """Delete every vector belonging to a document."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Count the total number of vectors in the store."""
        ...

    @abstractmethod
    def model_versions(self) -> set[str]:
        """Model-version tags of the stored vectors."""
        ...

    def close(self) -> None:
        """Release resources. Further calls raise RetrievalError."""
        return None


class ChunkStore(ABC):
    """Abstract base class for chunk storage and the lexical index."""

    @abstractmethod
    def put_many(self, chunks: list[Chunk]) -> None:
        """Store multiple chunks, overwriting if they exist."""
        ...

    @abstractmethod
    def get(self, chunk_id: str) -> Chunk | None:
        """Retrieve a chunk by ID. Returns None if not found."""
        ...

    @abstractmethod
    def get_many(self, chunk_ids: list[str]) -> list[Chunk]:
        """Retrieve multiple chunks by ID. Skips missing chunks."""
        ...

    @abstractmethod
    def get_by_document(self, document_id: str) -> list[Chunk]:
        """All chunks of a document ordered by position."""
        ...

    @abstractmethod
    def delete_by_document(self, document_id: str) -> None:
        """Delete all chunks of a document."""
        ...

    @abstractmethod
    def count_chunks(self) -> int:
        """Count the total number of chunks in the store."""
        ...

    @abstractmethod
    def all_chunks(self) -> list[Chunk]:
        """Every stored chunk in insertion order."""
        ...

    @abstractmethod
    def keyword_search(self, query: str, limit: int) -> list[tuple[Chunk, int]]:
        """Keyword-containment search.

        Returns (chunk, matched term count) pairs ordered by count descending,
        ties broken by insertion order. Chunks matching no term are excluded.
        """
        ...


class DocumentRegistry(ABC):
    """Tracks the current version and content hash of each origin."""

    @abstractmethod
    def get(self, origin: str) -> DocumentRecord | None:
        """Current record for an origin, or None if not tracked."""
        ...

    @abstractmethod
    def put(self, document: Document) -> None:
        """Record a document as the current version of its origin."""
        ...

    @abstractmethod
    def delete(self, origin: str) -> None:
        """Remove tracking for an origin."""
        ...

    @abstractmethod
    def list_documents(self) -> list[DocumentRecord]:
        """All tracked origins."""
        ...


class SessionStore(ABC):
    """Persists sessions and their append-only message logs."""

    @abstractmethod
    def create_session(self, title: str | None = None) -> Session:
        """Create and persist a new session."""
        ...

    @abstractmethod
    def get_session(self, session_id: str) -> Session | None:
        """Retrieve a session by ID. Returns None if not found."""
        ...

    @abstractmethod
    def list_sessions(self) -> list[Session]:
        """All sessions, most recently updated first."""
        ...

    @abstractmethod
    def rename_session(self, session_id: str, title: str) -> Session:
        """Change a session's title.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        ...

    @abstractmethod
    def delete_session(self, session_id: str) -> bool:
        """Delete a session and all its messages. Returns False if it did not exist."""
        ...

    @abstractmethod
    def append_message(self, session_id: str, role: Role, content: str) -> Message:
        """Append a message, atomically assigning the next sequence number.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        ...

    @abstractmethod
    def list_messages(self, session_id: str) -> list[Message]:
        """Messages of a session ordered by sequence. Unknown session yields []."""
        ...
