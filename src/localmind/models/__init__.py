"""Data models for LocalMind."""

from localmind.models.chunk import Chunk, EmbeddedChunk
from localmind.models.document import Document, DocumentRecord, content_hash
from localmind.models.generation import GenerationParams, ModelState
from localmind.models.results import ChatResponse, RankedChunk, RetrievalResult
from localmind.models.session import DEFAULT_SESSION_TITLE, Message, Role, Session
from localmind.models.task import (
    GenerationTask,
    ProviderAttempt,
    ProviderCapabilities,
    ProviderOutput,
    TaskFailure,
    TaskKind,
    TaskRequest,
    TaskResult,
    TaskState,
)

__all__ = [
    "Chunk",
    "EmbeddedChunk",
    "Document",
    "DocumentRecord",
    "content_hash",
    "GenerationParams",
    "ModelState",
    "ChatResponse",
    "RankedChunk",
    "RetrievalResult",
    "DEFAULT_SESSION_TITLE",
    "Message",
    "Role",
    "Session",
    "GenerationTask",
    "ProviderAttempt",
    "ProviderCapabilities",
    "ProviderOutput",
    "TaskFailure",
    "TaskKind",
    "TaskRequest",
    "TaskResult",
    "TaskState",
]
