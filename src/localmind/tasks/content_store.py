# src/localmind/tasks/content_store.py
"""Content store for finished task outputs."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from localmind.models import GenerationTask, ProviderOutput


class ContentStore(ABC):
    """Persists task outputs and hands back a reference to them."""

    @abstractmethod
    def save(self, task: GenerationTask, provider: str, output: ProviderOutput) -> str:
        """Persist an output and return its reference."""
        ...

    @abstractmethod
    def load(self, ref: str) -> dict[str, Any]:
        """Load a previously saved output record."""
        ...


class LocalContentStore(ContentStore):
    """Writes one JSON record per task under a directory."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, task: GenerationTask, provider: str, output: ProviderOutput) -> str:
        record = {
            "task_id": task.id,
            "kind": task.request.kind.value,
            "provider": provider,
            "payload": task.request.payload,
            "output": output.data,
            "realized_cost": output.realized_cost,
            "saved_at": datetime.now(UTC).isoformat(),
        }
        path = self.root / f"{task.id}.json"
        path.write_text(json.dumps(record, indent=2, default=str), encoding="utf-8")
        return str(path)

    def load(self, ref: str) -> dict[str, Any]:
        with open(ref, encoding="utf-8") as f:
            data: dict[str, Any] = json.load(f)
        return data
