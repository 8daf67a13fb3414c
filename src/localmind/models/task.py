# src/localmind/models/task.py
"""Background generation task models."""

import math
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from localmind.exceptions import ConfigError

NUMERIC_PAYLOAD_FIELDS = ("duration_seconds", "width", "height")


def payload_number(payload: dict[str, Any], key: str) -> float | None:
    """Read a numeric payload field.

    Raises:
        ConfigError: If the value is present but not a finite number.
    """
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"Payload field {key!r} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Payload field {key!r} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigError(f"Payload field {key!r} must be finite, got {value!r}")
    return number


class TaskKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    TEXT = "text"


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.FAILED, TaskState.CANCELLED)


class ProviderCapabilities(BaseModel):
    """What a provider can do. Limits of None mean unbounded."""

    kinds: frozenset[TaskKind]
    max_duration_seconds: float | None = None
    max_width: int | None = None
    max_height: int | None = None

    def supports(self, kind: TaskKind, payload: dict[str, Any]) -> bool:
        """Check whether a request of this kind and payload fits the limits.

        Raises:
            ConfigError: If a duration or size field is not a number.
        """
        duration = payload_number(payload, "duration_seconds")
        width = payload_number(payload, "width")
        height = payload_number(payload, "height")
        if kind not in self.kinds:
            return False
        if self.max_duration_seconds is not None and duration is not None:
            if duration > self.max_duration_seconds:
                return False
        if self.max_width is not None and width is not None and width > self.max_width:
            return False
        if self.max_height is not None and height is not None and height > self.max_height:
            return False
        return True


class TaskRequest(BaseModel):
    """A job submitted to the task queue.

    ``providers`` is the preference list (primary first). An empty list means
    "all registered providers in priority order".
    """

    kind: TaskKind
    payload: dict[str, Any] = Field(default_factory=dict)
    providers: list[str] = Field(default_factory=list)
    budget_ceiling: float | None = Field(default=None, ge=0.0)

    def check_payload(self) -> None:
        """Raise ConfigError if a duration or size field is not a number."""
        for key in NUMERIC_PAYLOAD_FIELDS:
            payload_number(self.payload, key)


class ProviderAttempt(BaseModel):
    """Record of one provider that did not service a task."""

    provider: str
    reason: str
    error: str


class ProviderOutput(BaseModel):
    """What a provider returns on success."""

    data: dict[str, Any] = Field(default_factory=dict)
    realized_cost: float | None = None


class TaskResult(BaseModel):
    """Terminal success record."""

    task_id: str
    output_ref: str
    provider: str
    realized_cost: float


class TaskFailure(BaseModel):
    """Terminal failure record: last error per attempted provider."""

    task_id: str
    errors: dict[str, str]


class GenerationTask(BaseModel):
    """A job tracked by the task queue."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    request: TaskRequest
    state: TaskState = TaskState.PENDING
    provider: str | None = None
    cost_estimate: float = 0.0
    realized_cost: float = 0.0
    result_ref: str | None = None
    attempts: list[ProviderAttempt] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def kind(self) -> TaskKind:
        return self.request.kind

    def result(self) -> TaskResult | None:
        if self.state is not TaskState.COMPLETED or self.provider is None:
            return None
        return TaskResult(
            task_id=self.id,
            output_ref=self.result_ref or "",
            provider=self.provider,
            realized_cost=self.realized_cost,
        )

    def failure(self) -> TaskFailure | None:
        if self.state is not TaskState.FAILED:
            return None
        return TaskFailure(
            task_id=self.id,
            errors={attempt.provider: attempt.error for attempt in self.attempts},
        )
