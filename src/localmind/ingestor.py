# src/localmind/ingestor.py
"""Ingestion pipeline for LocalMind."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pydantic import BaseModel, Field

from localmind.chunker import Chunker, decode_text
from localmind.embedder import Embedder
from localmind.exceptions import IngestionError
from localmind.loaders import LoaderRegistry
from localmind.models import Chunk, Document, EmbeddedChunk
from localmind.stores import ChunkStore, DocumentRegistry, VectorStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int, str], None]
"""Callback for ingestion progress updates.

Args:
    event: Event type: "chunking", "embedding" or "indexing"
    current: Current progress count (0 to total)
    total: Total items to process
    message: Human-readable status message
"""


class IngestResult(BaseModel):
    """Outcome of ingesting one document."""

    origin: str
    document_id: str | None = None
    version: int | None = None
    chunks: int = 0
    skipped: bool = False
    reason: str | None = None
    replaced: str | None = None


class IngestReport(BaseModel):
    """Outcome of a batch ingestion."""

    results: list[IngestResult] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def ingested(self) -> int:
        return sum(1 for r in self.results if not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed(self) -> int:
        return len(self.errors)


class Ingestor:
    """Orchestrates the ingestion pipeline.

    Pipeline:
    1. Compare the content hash with the registry (unchanged origins are skipped)
    2. Chunk the document with a sliding window
    3. Embed the chunks in batches
    4. Store chunks (lexical index) and vectors
    5. Record the new version in the document registry
    6. Remove the previous version's chunks and vectors

    The previous version is removed only after the new one is fully written;
    a failed write discards the partial new version, so a rejected
    re-ingestion leaves the old version in place.
    """

    def __init__(
        self,
        chunker: Chunker,
        embedder: Embedder,
        vector_store: VectorStore,
        chunk_store: ChunkStore,
        document_registry: DocumentRegistry,
        embed_batch_size: int = 32,
        loader_registry: LoaderRegistry | None = None,
    ) -> None:
        """Initialize the ingestor with all required components.

        Args:
            chunker: Splits documents into chunks
            embedder: Embeds chunk content
            vector_store: Store for chunk vectors
            chunk_store: Store for chunks and the lexical index
            document_registry: Tracks the current version of each origin
            embed_batch_size: Number of chunks per embedding call
            loader_registry: File loaders for ``ingest_path`` (default: LoaderRegistry.default())
        """
        if embed_batch_size <= 0:
            raise ValueError(f"embed_batch_size must be positive, got {embed_batch_size}")
        self.chunker = chunker
        self.embedder = embedder
        self.vector_store = vector_store
        self.chunk_store = chunk_store
        self.document_registry = document_registry
        self.embed_batch_size = embed_batch_size
        self.loader_registry = loader_registry or LoaderRegistry.default()

    def _embed(self, chunks: list[Chunk], progress: ProgressCallback) -> list[EmbeddedChunk]:
        embedded: list[EmbeddedChunk] = []
        total = len(chunks)
        for start in range(0, total, self.embed_batch_size):
            batch = chunks[start : start + self.embed_batch_size]
            embedded.extend(self.embedder.embed_chunks(batch))
            progress("embedding", len(embedded), total, f"Embedded {len(embedded)}/{total} chunks")
        return embedded

    def ingest_document(
        self,
        document: Document,
        on_progress: ProgressCallback | None = None,
    ) -> IngestResult:
        """Ingest a Document, skipping it if its origin already holds the same content.

        Raises:
            IngestionError: If the document is empty.
        """

        def progress(event: str, current: int, total: int, message: str = "") -> None:
            if on_progress:
                on_progress(event, current, total, message)

        previous = self.document_registry.get(document.origin)
        if previous is not None and previous.content_hash == document.content_hash:
            logger.info("Skipping %s: content unchanged", document.origin)
            return IngestResult(
                origin=document.origin,
                document_id=previous.document_id,
                version=previous.version,
                skipped=True,
                reason="content unchanged",
            )

        if previous is not None:
            document = document.model_copy(update={"version": previous.version + 1})

        progress("chunking", 0, 1, f"Chunking {document.origin}...")
        chunks = self.chunker.chunk(document)
        progress("chunking", 1, 1, f"Created {len(chunks)} chunks")

        embedded = self._embed(chunks, progress)

        progress("indexing", 0, 1, f"Indexing {len(chunks)} chunks...")
        try:
            self.chunk_store.put_many(chunks)
            self.vector_store.insert_many(embedded)
        except Exception:
            logger.error(
                "Indexing %s failed, discarding version %d", document.origin, document.version
            )
            self._discard(document.id)
            raise
        self.document_registry.put(document)

        if previous is not None:
            logger.info(
                "Replacing %s version %d with version %d",
                document.origin,
                previous.version,
                document.version,
            )
            self.vector_store.delete_by_document(previous.document_id)
            self.chunk_store.delete_by_document(previous.document_id)
        progress("indexing", 1, 1, "Indexing complete")

        logger.info(
            "Ingested %s (version %d, %d chunks)", document.origin, document.version, len(chunks)
        )
        return IngestResult(
            origin=document.origin,
            document_id=document.id,
            version=document.version,
            chunks=len(chunks),
            replaced=previous.document_id if previous is not None else None,
        )

    def ingest_text(
        self,
        text: str | bytes,
        origin: str,
        on_progress: ProgressCallback | None = None,
    ) -> IngestResult:
        """Ingest raw text (or UTF-8 bytes) under an origin identifier.

        Raises:
            IngestionError: If the text is empty or not valid UTF-8.
        """
        content = decode_text(text, origin)
        return self.ingest_document(Document(origin=origin, content=content), on_progress)

    def ingest_path(
        self,
        path: str,
        origin: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> IngestResult:
        """Load a file with the matching loader and ingest it."""
        document = self.loader_registry.load(path, origin)
        return self.ingest_document(document, on_progress)

    def ingest(self, items: Iterable[tuple[str | bytes, str]]) -> IngestReport:
        """Ingest a batch of ``(text, origin)`` pairs.

        A document that fails with IngestionError is logged and skipped; the
        rest of the batch continues.
        """
        report = IngestReport()
        for text, origin in items:
            try:
                report.results.append(self.ingest_text(text, origin))
            except IngestionError as e:
                logger.warning("Skipping document %s: %s", origin, e)
                report.errors[origin] = str(e)
        return report

    def delete(self, origin: str) -> bool:
        """Remove every chunk and vector of an origin. Returns False if it is not tracked."""
        record = self.document_registry.get(origin)
        if record is None:
            return False
        self.vector_store.delete_by_document(record.document_id)
        self.chunk_store.delete_by_document(record.document_id)
        self.document_registry.delete(origin)
        logger.info("Deleted %s (version %d)", origin, record.version)
        return True

    def needs_reembed(self) -> bool:
        """Whether the vector store holds vectors from another embedding model."""
        return bool(self.vector_store.model_versions() - {self.embedder.model_version})

    def reembed(self, on_progress: ProgressCallback | None = None) -> int:
        """Re-embed every stored chunk with the active embedder.

        Does nothing when all stored vectors already come from the active
        model. Returns the number of re-embedded chunks.
        """

        def progress(event: str, current: int, total: int, message: str = "") -> None:
            if on_progress:
                on_progress(event, current, total, message)

        if not self.needs_reembed():
            return 0

        stale = sorted(self.vector_store.model_versions() - {self.embedder.model_version})
        logger.info(
            "Re-embedding corpus: stored versions %s, active %s",
            ", ".join(stale),
            self.embedder.model_version,
        )
        # The whole store is rebuilt because a new model may change the dimensionality
        embedded: list[EmbeddedChunk] = []
        for record in self.document_registry.list_documents():
            chunks = self.chunk_store.get_by_document(record.document_id)
            if chunks:
                embedded.extend(self._embed(chunks, progress))

        self.vector_store.replace_all(embedded)
        logger.info("Re-embedded %d chunks", len(embedded))
        return len(embedded)

    def _discard(self, document_id: str) -> None:
        """Remove whatever part of a document version was already written."""
        for store in (self.vector_store, self.chunk_store):
            try:
                store.delete_by_document(document_id)
            except Exception as e:
                logger.warning(
                    "Could not discard %s from %s: %s", document_id, type(store).__name__, e
                )
