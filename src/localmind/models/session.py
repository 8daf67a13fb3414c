# src/localmind/models/session.py
"""Session and message data models."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

DEFAULT_SESSION_TITLE = "New Chat"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Session(BaseModel):
    """A conversation."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = DEFAULT_SESSION_TITLE
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Message(BaseModel):
    """One immutable turn in a session, ordered by ``sequence``."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    role: Role
    content: str
    sequence: int = Field(ge=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    def as_chat_message(self) -> dict[str, str]:
        """Return the message in LiteLLM/OpenAI chat format."""
        return {"role": self.role.value, "content": self.content}
