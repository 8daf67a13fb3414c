"""LocalMind - a local-first assistant over a private corpus.

Answers questions with a locally run model using hybrid retrieval over your
own documents, keeps chat sessions, and dispatches image, video and text
generation jobs to external providers with automatic failover.

Quick Start (LiteLLM + Local Storage):
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
        response = await mind.reply(session.id, "What is reciprocal rank fusion?")

Background jobs:
    from localmind import TaskKind, TaskRequest

    task = await mind.submit_task(TaskRequest(kind=TaskKind.IMAGE, payload={"prompt": "a fox"}))
    done = await mind.wait_task(task.id)
"""

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("localmind")
except PackageNotFoundError:
    # Development / source-tree fallback (e.g. running tests without installing the wheel).
    import tomllib
    from pathlib import Path

    def _read_version_from_pyproject() -> str | None:
        for parent in Path(__file__).resolve().parents:
            pyproject = parent / "pyproject.toml"
            if pyproject.exists():
                data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
                version = data.get("project", {}).get("version")
                return str(version) if version is not None else None
        return None

    __version__ = _read_version_from_pyproject() or "unknown"

# Chunking and embedding
from localmind.chunker import Chunker, SlidingWindowChunker

# Configuration objects
from localmind.configuration import (
    LiteLLMProvider,
    LocalStorage,
    ProviderConfig,
    StorageConfig,
)
from localmind.embedder import ClientEmbedder, Embedder

# Errors
from localmind.exceptions import (
    ConfigError,
    EmbeddingError,
    GenerationError,
    IngestionError,
    LocalMindError,
    ProviderError,
    RetrievalError,
    SessionNotFoundError,
    TaskError,
)

# Generation
from localmind.generation import CancellationToken, GenerationEngine, TokenStream

# Pipelines
from localmind.ingestor import IngestReport, Ingestor, IngestResult

# File loading
from localmind.loaders import LoaderRegistry

# Central assistant
from localmind.localmind import LocalMind

# Core models
from localmind.models import (
    ChatResponse,
    Chunk,
    Document,
    GenerationParams,
    GenerationTask,
    Message,
    ModelState,
    RankedChunk,
    RetrievalResult,
    Role,
    Session,
    TaskKind,
    TaskRequest,
    TaskState,
)
from localmind.prompt import PromptAssembler
from localmind.reranker import LLMReranker, NoopReranker, Reranker
from localmind.retriever import HybridRetriever, reciprocal_rank_fusion
from localmind.settings import Settings

# Background tasks
from localmind.tasks import ProviderRegistry, TaskQueue

__all__ = [
    "__version__",
    # Central assistant
    "LocalMind",
    "Settings",
    # Configuration objects
    "LiteLLMProvider",
    "LocalStorage",
    "ProviderConfig",
    "StorageConfig",
    # Models
    "ChatResponse",
    "Chunk",
    "Document",
    "GenerationParams",
    "GenerationTask",
    "Message",
    "ModelState",
    "RankedChunk",
    "RetrievalResult",
    "Role",
    "Session",
    "TaskKind",
    "TaskRequest",
    "TaskState",
    # Components
    "Chunker",
    "SlidingWindowChunker",
    "Embedder",
    "ClientEmbedder",
    "HybridRetriever",
    "reciprocal_rank_fusion",
    "Reranker",
    "LLMReranker",
    "NoopReranker",
    "PromptAssembler",
    "GenerationEngine",
    "TokenStream",
    "CancellationToken",
    "Ingestor",
    "IngestResult",
    "IngestReport",
    "LoaderRegistry",
    "ProviderRegistry",
    "TaskQueue",
    # Errors
    "LocalMindError",
    "IngestionError",
    "EmbeddingError",
    "RetrievalError",
    "GenerationError",
    "TaskError",
    "ProviderError",
    "ConfigError",
    "SessionNotFoundError",
]
