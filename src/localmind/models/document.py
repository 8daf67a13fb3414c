# src/localmind/models/document.py
"""Document data model."""

import hashlib
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator


def content_hash(text: str) -> str:
    """Return the sha256 hex digest of the UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class Document(BaseModel):
    """A unit of ingested source text.

    Documents are immutable once stored; re-ingesting a changed origin
    produces a new Document with the next version number.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    origin: str
    content: str
    content_hash: str
    version: int = Field(default=1, ge=1)
    ingested_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _fill_hash(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("content_hash"):
            content = data.get("content")
            if isinstance(content, str):
                data = {**data, "content_hash": content_hash(content)}
        return data


class DocumentRecord(BaseModel):
    """Registry entry for the current version of an origin."""

    origin: str
    document_id: str
    content_hash: str
    version: int = Field(ge=1)
    ingested_at: datetime
