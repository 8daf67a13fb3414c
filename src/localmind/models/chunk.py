# src/localmind/models/chunk.py
"""Chunk data model."""

from uuid import uuid4

from pydantic import BaseModel, Field


class Chunk(BaseModel):
    """A bounded span of a document, the unit of retrieval.

    ``start``/``end`` are character offsets into the parent document's
    content (end exclusive).
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    document_id: str
    position: int = Field(ge=0)
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    content: str
    origin: str = ""


class EmbeddedChunk(BaseModel):
    """A chunk paired with its embedding vector."""

    chunk: Chunk
    embedding: list[float]
    model_version: str
