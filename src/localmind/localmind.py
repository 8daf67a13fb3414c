# src/localmind/localmind.py
"""Central assistant class for LocalMind."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from localmind.chunker import SlidingWindowChunker
from localmind.exceptions import GenerationError, RetrievalError, SessionNotFoundError
from localmind.generation import CancellationToken, FinishReason
from localmind.ingestor import IngestReport, Ingestor, IngestResult, ProgressCallback
from localmind.models import (
    ChatResponse,
    GenerationParams,
    GenerationTask,
    Message,
    Role,
    Session,
    TaskRequest,
)
from localmind.prompt import PromptAssembler
from localmind.reranker import LLMReranker, NoopReranker, Reranker
from localmind.retriever import HybridRetriever
from localmind.settings import Settings
from localmind.tasks import ProviderRegistry, TaskQueue

if TYPE_CHECKING:
    from types import TracebackType

    from localmind.configuration import ProviderConfig, StorageConfig, Stores
    from localmind.loaders import LoaderRegistry

logger = logging.getLogger(__name__)


@dataclass
class _Turn:
    """What a finished turn produced."""

    parts: list[str] = field(default_factory=list)
    references: dict[int, str] = field(default_factory=dict)
    finish_reason: FinishReason | None = None
    message: Message | None = None


class LocalMind:
    """The assistant: a private corpus, one local model and background jobs.

    LocalMind bundles the stores, the embedder, the generation engine and the
    task queue, and exposes the operations an application needs: ingesting
    documents, chatting in sessions, and dispatching generation tasks.

    Example:
        from localmind import LiteLLMProvider, LocalMind, LocalStorage

        async with LocalMind(
            provider=LiteLLMProvider(
                llm="ollama_chat/llama3.2",
                embedding="ollama/nomic-embed-text",
            ),
            storage=LocalStorage("./data"),
        ) as mind:
            mind.ingest_path("notes.md")
            session = mind.create_session()
            async for token in mind.stream_reply(session.id, "What did I write about RRF?"):
                print(token, end="")
    """

    def __init__(
        self,
        *,
        provider: ProviderConfig,
        storage: StorageConfig | None = None,
        stores: Stores | None = None,
        settings: Settings | None = None,
        job_providers: ProviderRegistry | None = None,
        reranker: Reranker | None = None,
        loader_registry: LoaderRegistry | None = None,
    ) -> None:
        """Create a LocalMind instance.

        Args:
            provider: Builds the embedder and the generation engine.
                      Example: LiteLLMProvider(llm="ollama_chat/llama3.2",
                               embedding="ollama/nomic-embed-text")
            storage: Storage bundle (convenience). Mutually exclusive with ``stores``.
                     Example: LocalStorage("./data")
            stores: Explicit storage components.
            settings: Behavioral settings. Defaults to Settings().
            job_providers: Providers for background generation tasks.
            reranker: Overrides the reranker chosen from settings.
            loader_registry: File loaders for ``ingest_path``.

        Raises:
            ValueError: If neither or both of ``storage`` and ``stores`` are given.
        """
        self.settings = settings if settings is not None else Settings()

        if stores is None:
            if storage is None:
                raise ValueError("Must provide either a 'storage' bundle or explicit 'stores'")
            built = storage.build_stores(self.settings)
        elif storage is not None:
            raise ValueError("Cannot mix 'storage' bundle with explicit 'stores'")
        else:
            built = stores
        self.vector_store = built.vector_store
        self.chunk_store = built.chunk_store
        self.document_registry = built.document_registry
        self.session_store = built.session_store
        self.content_store = built.content_store

        self.llm_model = provider.llm
        self.embedder = provider.build_embedder(self.settings)
        self.engine = provider.build_engine(self.settings)

        self.ingestor = Ingestor(
            chunker=SlidingWindowChunker(self.settings.chunk_size, self.settings.chunk_overlap),
            embedder=self.embedder,
            vector_store=self.vector_store,
            chunk_store=self.chunk_store,
            document_registry=self.document_registry,
            embed_batch_size=self.settings.embed_batch_size,
            loader_registry=loader_registry,
        )
        self.retriever = HybridRetriever(
            embedder=self.embedder,
            vector_store=self.vector_store,
            chunk_store=self.chunk_store,
            top_k=self.settings.top_k,
            similarity_threshold=self.settings.similarity_threshold,
            rrf_k=self.settings.rrf_k,
            result_count=self.settings.result_count,
        )
        if reranker is not None:
            self.reranker = reranker
        elif self.settings.rerank_enabled:
            self.reranker = LLMReranker(
                self.engine,
                cutoff=self.settings.rerank_cutoff,
                batch_size=self.settings.rerank_batch_size,
            )
        else:
            self.reranker = NoopReranker()
        self.assembler = PromptAssembler(max_context_chars=self.settings.max_context_chars)

        registry = (
            job_providers
            if job_providers is not None
            else ProviderRegistry(priority=self.settings.provider_priority)
        )
        self.task_queue = TaskQueue(
            registry,
            self.content_store,
            max_concurrent=self.settings.max_concurrent_tasks,
            cancel_grace=self.settings.task_cancel_grace,
        )
        self._session_locks: dict[str, asyncio.Lock] = {}

    async def __aenter__(self) -> LocalMind:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self, load_model: bool = True) -> None:
        """Start the task queue and (optionally) load the embedder and chat model."""
        await self.task_queue.start()
        if load_model:
            await self.load_model()

    async def load_model(self, model: str | None = None) -> None:
        """Load the embedder and the chat model (default: the provider's llm)."""
        await asyncio.to_thread(self.embedder.load)
        await self.engine.load(model or self.llm_model)

    async def close(self) -> None:
        """Stop background work and release the model and the vector store.

        SQLite stores use per-operation connections and need no closing.
        After calling close(), the instance should not be used.
        """
        await self.task_queue.stop()
        await self.engine.unload()
        self.embedder.unload()
        self.vector_store.close()

    # Ingestion

    def _ensure_embedder(self) -> None:
        if not self.embedder.is_loaded:
            self.embedder.load()

    def ingest_text(
        self,
        text: str | bytes,
        origin: str,
        on_progress: ProgressCallback | None = None,
    ) -> IngestResult:
        """Ingest text under an origin, skipping it if the content is unchanged."""
        self._ensure_embedder()
        return self.ingestor.ingest_text(text, origin, on_progress)

    def ingest_path(
        self,
        path: str,
        origin: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> IngestResult:
        """Ingest a text, markdown or HTML file."""
        self._ensure_embedder()
        return self.ingestor.ingest_path(path, origin, on_progress)

    def ingest(self, items: Iterable[tuple[str | bytes, str]]) -> IngestReport:
        """Ingest ``(text, origin)`` pairs; invalid documents are skipped and reported."""
        self._ensure_embedder()
        return self.ingestor.ingest(items)

    def delete_document(self, origin: str) -> bool:
        """Remove an origin from the corpus."""
        return self.ingestor.delete(origin)

    def reembed(self, on_progress: ProgressCallback | None = None) -> int:
        """Re-embed the corpus if it was indexed with another embedding model."""
        self._ensure_embedder()
        return self.ingestor.reembed(on_progress)

    # Sessions

    def create_session(self, title: str | None = None) -> Session:
        return self.session_store.create_session(title)

    def get_session(self, session_id: str) -> Session | None:
        return self.session_store.get_session(session_id)

    def list_sessions(self) -> list[Session]:
        return self.session_store.list_sessions()

    def rename_session(self, session_id: str, title: str) -> Session:
        return self.session_store.rename_session(session_id, title)

    def delete_session(self, session_id: str) -> bool:
        self._session_locks.pop(session_id, None)
        return self.session_store.delete_session(session_id)

    def history(self, session_id: str) -> list[Message]:
        return self.session_store.list_messages(session_id)

    # Chat

    def _session_lock(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = self._session_locks[session_id] = asyncio.Lock()
        return lock

    async def _run_turn(
        self,
        session_id: str,
        text: str,
        turn: _Turn,
        cancel: CancellationToken | None,
        params: GenerationParams | None,
    ) -> AsyncIterator[str]:
        async with self._session_lock(session_id):
            if await asyncio.to_thread(self.session_store.get_session, session_id) is None:
                raise SessionNotFoundError(f"Session {session_id} not found")

            earlier = await asyncio.to_thread(self.session_store.list_messages, session_id)
            keep = self.settings.history_messages
            history = earlier[-keep:] if keep else []
            await asyncio.to_thread(self.session_store.append_message, session_id, Role.USER, text)

            try:
                ranked = await self.retriever.retrieve(text)
            except RetrievalError as e:
                logger.warning("Retrieval failed, answering without references: %s", e)
                ranked = []
            if ranked:
                ranked = await self.reranker.rerank(text, ranked)

            prompt = self.assembler.assemble(text, ranked, history)
            turn.references = prompt.references

            stream = self.engine.generate_stream(prompt.text, params, cancel)
            async with stream:
                async for token in stream:
                    turn.parts.append(token)
                    yield token
            turn.finish_reason = stream.finish_reason

            answer = stream.text
            if turn.finish_reason == "cancelled" and not answer:
                logger.info("Turn in session %s cancelled before any output", session_id)
                return
            turn.message = await asyncio.to_thread(
                self.session_store.append_message, session_id, Role.ASSISTANT, answer
            )

    async def stream_reply(
        self,
        session_id: str,
        text: str,
        cancel: CancellationToken | None = None,
        params: GenerationParams | None = None,
    ) -> AsyncIterator[str]:
        """Answer a user message, yielding the reply token by token.

        Turns within one session run strictly one after another; different
        sessions proceed concurrently. The user message is stored first; the
        assistant message is stored after the stream ends. A reply cancelled
        through ``cancel`` is stored with the text produced so far (nothing is
        stored if it was empty).

        Raises:
            SessionNotFoundError: If the session does not exist.
            GenerationError: If no model is loaded or generation fails; no
                assistant message is stored.
        """
        async for token in self._run_turn(session_id, text, _Turn(), cancel, params):
            yield token

    async def reply(
        self,
        session_id: str,
        text: str,
        cancel: CancellationToken | None = None,
        params: GenerationParams | None = None,
    ) -> ChatResponse:
        """Answer a user message and return the complete response."""
        turn = _Turn()
        try:
            async for _ in self._run_turn(session_id, text, turn, cancel, params):
                pass
        except GenerationError as e:
            logger.error("Reply in session %s failed: %s", session_id, e)
            raise
        return ChatResponse(
            session_id=session_id,
            answer="".join(turn.parts),
            references=turn.references,
            finish_reason=turn.finish_reason or "cancelled",
            message=turn.message,
        )

    # Background tasks

    async def submit_task(self, request: TaskRequest) -> GenerationTask:
        """Queue a background generation task (starts the queue if needed)."""
        if not self.task_queue.running:
            await self.task_queue.start()
        return self.task_queue.enqueue(request)

    def task_status(self, task_id: str) -> GenerationTask:
        return self.task_queue.status(task_id)

    async def cancel_task(self, task_id: str) -> GenerationTask:
        return await self.task_queue.cancel(task_id)

    async def wait_task(self, task_id: str, timeout: float | None = None) -> GenerationTask:
        return await self.task_queue.wait(task_id, timeout)

    def forget_task(self, task_id: str) -> GenerationTask:
        """Drop a finished task from memory; its saved output is kept."""
        return self.task_queue.forget(task_id)

    @property
    def total_cost(self) -> float:
        """Realized cost of every completed task since start."""
        return self.task_queue.total_cost
