"""Shared pytest fixtures."""

import asyncio
import contextlib
import hashlib
import re
import tempfile
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio

from localmind.embedder import ClientEmbedder
from localmind.generation import GenerationEngine
from localmind.models import (
    GenerationTask,
    ProviderCapabilities,
    ProviderOutput,
    TaskKind,
)
from localmind.providers import EmbeddingClient, LLMClient
from localmind.tasks import Provider

FAKE_DIMENSION = 16
_WORD = re.compile(r"\w+")
_TOKEN = re.compile(r"\S+\s*")


class FakeEmbeddingClient(EmbeddingClient):
    """Deterministic bag-of-words vectors: texts sharing words are similar."""

    def __init__(self, model: str = "fake-embed", dimension: int = FAKE_DIMENSION) -> None:
        self.model = model
        self.dimension = dimension
        self.calls: list[list[str]] = []
        self.fail = False

    def vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dimension
        for word in _WORD.findall(text.casefold()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % (self.dimension - 1)
            vec[bucket] += 1.0
        # Constant component keeps every vector non-zero
        vec[-1] = 0.1
        return vec

    def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise ConnectionError("embedding server unreachable")
        return [self.vector(t) for t in texts]


class FakeLLMClient(LLMClient):
    """Streams scripted replies word by word.

    Each ``astream`` call consumes the next entry of ``replies`` (or
    ``default`` once they run out).
    """

    def __init__(
        self,
        model: str = "fake-llm",
        replies: list[str] | None = None,
        default: str = "Hello from the model",
        fail_at: int | None = None,
        delay: float = 0.0,
    ) -> None:
        self.model = model
        self.replies = list(replies or [])
        self.default = default
        self.fail_at = fail_at
        self.delay = delay
        self.calls: list[list[dict]] = []
        self.closed = False

    async def astream(self, messages, params=None):
        self.calls.append(messages)
        reply = self.replies.pop(0) if self.replies else self.default
        for index, token in enumerate(_TOKEN.findall(reply)):
            if self.fail_at is not None and index == self.fail_at:
                raise RuntimeError("backend crashed")
            if self.delay:
                await asyncio.sleep(self.delay)
            yield token

    def close(self) -> None:
        self.closed = True


@dataclass(frozen=True)
class FakeProviderConfig:
    """Satisfies ProviderConfig with in-memory fakes."""

    llm_client: FakeLLMClient
    embedding_client: FakeEmbeddingClient
    llm: str = "fake-llm"

    def build_embedder(self, settings: Any) -> ClientEmbedder:
        return ClientEmbedder(self.embedding_client)

    def build_engine(self, settings: Any) -> GenerationEngine:
        return GenerationEngine(
            lambda model: self.llm_client,
            default_params=settings.generation_params(),
            warmup=False,
        )

    def build_llm_client(self, settings: Any = None) -> FakeLLMClient:
        return self.llm_client


class ScriptedProvider(Provider):
    """Job provider whose successive runs follow a script.

    Script entries are a ProviderOutput (success), an Exception (raised) or
    the string "hang" (blocks until cancelled).
    """

    def __init__(
        self,
        name: str,
        script: list[Any] | None = None,
        kinds: frozenset[TaskKind] = frozenset(TaskKind),
        hold: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(name, capabilities=ProviderCapabilities(kinds=kinds), **kwargs)
        self.script = list(script or [])
        self.hold = hold
        self.runs: list[str] = []
        self.cancelled: list[str] = []
        self.started = asyncio.Event()

    async def run(self, task: GenerationTask) -> ProviderOutput:
        self.runs.append(task.id)
        self.started.set()
        step = self.script.pop(0) if self.script else ProviderOutput(data={"by": self.name})
        if self.hold:
            await asyncio.sleep(self.hold)
        if isinstance(step, Exception):
            raise step
        if step == "hang":
            await asyncio.Event().wait()
        return step

    async def cancel(self, task: GenerationTask) -> bool:
        self.cancelled.append(task.id)
        return True


@pytest.fixture
def temp_dir():
    """Create a temporary directory for stores."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir

        # Cleanup ChromaDB's shared system cache to release file handles
        # See: https://github.com/chroma-core/chroma/issues/5868
        from chromadb.api.shared_system_client import SharedSystemClient

        if hasattr(SharedSystemClient, "_identifier_to_system"):
            identifiers_to_remove = [
                identifier
                for identifier in list(SharedSystemClient._identifier_to_system.keys())
                if tmpdir in str(identifier)
            ]
            for identifier in identifiers_to_remove:
                system = SharedSystemClient._identifier_to_system.pop(identifier, None)
                if system is not None:
                    with contextlib.suppress(Exception):
                        system.stop()


@pytest.fixture
def stores(temp_dir):
    """Every store of a LocalStorage bundle under a temporary directory."""
    from localmind.configuration import LocalStorage

    built = LocalStorage(temp_dir).build_stores()
    yield built
    built.vector_store.close()


@pytest.fixture
def embedding_client():
    return FakeEmbeddingClient()


@pytest.fixture
def embedder(embedding_client):
    """A loaded embedder backed by the fake client."""
    emb = ClientEmbedder(embedding_client)
    emb.load()
    return emb


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def engine(fake_llm):
    """An UNLOADED engine whose backend is ``fake_llm``."""
    return GenerationEngine(lambda model: fake_llm, warmup=False)


@pytest_asyncio.fixture
async def ready_engine(engine):
    await engine.load("fake-llm")
    yield engine
    await engine.unload()


@pytest.fixture
def provider_config(fake_llm, embedding_client):
    return FakeProviderConfig(llm_client=fake_llm, embedding_client=embedding_client)


@pytest.fixture
def make_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def make_embedding_client():
    """Factory for FakeEmbeddingClient instances."""
    return FakeEmbeddingClient


@pytest.fixture
def make_llm():
    """Factory for FakeLLMClient instances."""
    return FakeLLMClient


@dataclass
class ProgressLog:
    events: list[tuple[str, int, int, str]] = field(default_factory=list)

    def __call__(self, event: str, current: int, total: int, message: str) -> None:
        self.events.append((event, current, total, message))


@pytest.fixture
def progress_log():
    return ProgressLog()
