# src/localmind/models/results.py
"""Result data models for retrieval and chat."""

from pydantic import BaseModel, Field

from localmind.models.chunk import Chunk
from localmind.models.session import Message


class RetrievalResult(BaseModel):
    """A single vector-search hit."""

    chunk: Chunk
    score: float = Field(ge=0.0, le=1.0)
    rank: int = Field(ge=1)


class RankedChunk(BaseModel):
    """A chunk in the fused (and optionally reranked) result list."""

    chunk: Chunk
    score: float
    rank: int = Field(ge=1)
    semantic_rank: int | None = None
    lexical_rank: int | None = None
    similarity: float | None = None
    rerank_score: float | None = None


class ChatResponse(BaseModel):
    """Full response to a user turn."""

    session_id: str
    answer: str
    references: dict[int, str] = Field(default_factory=dict)
    finish_reason: str
    message: Message | None = None
