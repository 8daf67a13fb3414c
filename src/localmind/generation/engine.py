# src/localmind/generation/engine.py
"""Generation engine: one resident model behind a state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from localmind.exceptions import GenerationError
from localmind.generation.stream import CancellationToken, TokenStream
from localmind.models import GenerationParams, ModelState
from localmind.providers.base import LLMClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], LLMClient]

WARMUP_MESSAGES = [{"role": "user", "content": "Reply with OK."}]


def _as_messages(prompt: str | list[dict]) -> list[dict]:
    if isinstance(prompt, str):
        return [{"role": "user", "content": prompt}]
    return prompt


class GenerationEngine:
    """Owns the single resident model and serializes generation.

    States: UNLOADED -> LOADING -> READY <-> GENERATING, and LOADING -> FAILED.
    Loading a different model unloads the current one first, so at most one
    model is resident. All state changes and every generation run under one
    asyncio.Lock; waiting callers are served in FIFO order.

    Example:
        engine = GenerationEngine(lambda model: LiteLLMClient(model=model))
        await engine.load("ollama_chat/llama3.2")
        async with engine.generate_stream("Hello", params) as stream:
            async for token in stream:
                ...
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        default_params: GenerationParams | None = None,
        warmup: bool = True,
    ) -> None:
        """Initialize the engine in the UNLOADED state.

        Args:
            client_factory: Builds a backend client for a model identifier.
            default_params: Parameters used when a call passes none.
            warmup: Issue a one-token request on load so the backend
                actually brings the model into memory.
        """
        self._client_factory = client_factory
        self.default_params = default_params or GenerationParams()
        self._warmup = warmup
        self._lock = asyncio.Lock()
        self._state = ModelState.UNLOADED
        self._client: LLMClient | None = None
        self._model: str | None = None
        self.last_error: str | None = None

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def model(self) -> str | None:
        return self._model

    @property
    def is_ready(self) -> bool:
        return self._state in (ModelState.READY, ModelState.GENERATING)

    async def load(self, model: str) -> None:
        """Load a model, unloading any other resident model first.

        Raises:
            GenerationError: If the backend fails to load; the engine is left FAILED.
        """
        async with self._lock:
            if self._state is ModelState.READY and self._model == model:
                return
            self._release()

            self._state = ModelState.LOADING
            self._model = model
            logger.info("Loading model %s", model)
            try:
                client = self._client_factory(model)
                if self._warmup:
                    probe = self.default_params.model_copy(update={"max_output_tokens": 1})
                    await client.acomplete(WARMUP_MESSAGES, probe)
            except Exception as e:
                self._state = ModelState.FAILED
                self.last_error = str(e)
                logger.error("Failed to load model %s: %s", model, e)
                raise GenerationError(
                    f"Failed to load model {model}: {e}", reason="load_failed"
                ) from e

            self._client = client
            self._state = ModelState.READY
            self.last_error = None
            logger.info("Model %s ready", model)

    async def unload(self) -> None:
        """Release the resident model (waits for any in-flight generation)."""
        async with self._lock:
            self._release()

    def _release(self) -> None:
        if self._client is not None:
            logger.info("Unloading model %s", self._model)
            self._client.close()
        self._client = None
        self._model = None
        self._state = ModelState.UNLOADED

    def generate_stream(
        self,
        prompt: str | list[dict],
        params: GenerationParams | None = None,
        cancel: CancellationToken | None = None,
    ) -> TokenStream:
        """Start a generation and return its token stream.

        Production begins when the stream is first iterated; if another
        generation is in flight, iteration waits for it (FIFO).

        Raises:
            GenerationError: If no model is ready.
        """
        if not self.is_ready:
            raise GenerationError(
                f"Generation engine is not ready (state: {self._state.value})",
                reason="not_ready",
            )
        messages = _as_messages(prompt)
        effective = params or self.default_params

        def producer(stream: TokenStream) -> AsyncIterator[str]:
            return self._produce(stream, messages, effective)

        return TokenStream(producer, cancel)

    async def complete(
        self,
        prompt: str | list[dict],
        params: GenerationParams | None = None,
        cancel: CancellationToken | None = None,
    ) -> str:
        """Generate and return the full text."""
        stream = self.generate_stream(prompt, params, cancel)
        async with stream:
            async for _ in stream:
                pass
        return stream.text

    async def _produce(
        self,
        stream: TokenStream,
        messages: list[dict],
        params: GenerationParams,
    ) -> AsyncIterator[str]:
        async with self._lock:
            if self._state is not ModelState.READY or self._client is None:
                raise GenerationError(
                    f"Generation engine is not ready (state: {self._state.value})",
                    reason="not_ready",
                )
            if stream.cancelled:
                stream.finish_reason = "cancelled"
                return

            self._state = ModelState.GENERATING
            backend = self._client.astream(messages, params)
            produced = 0
            failed = False
            try:
                async for piece in backend:
                    if stream.cancelled:
                        stream.finish_reason = "cancelled"
                        break
                    stream._record(piece)
                    produced += 1
                    yield piece
                    if stream.cancelled:
                        stream.finish_reason = "cancelled"
                        break
                    if produced >= params.max_output_tokens:
                        stream.finish_reason = "length"
                        break
                else:
                    stream.finish_reason = "stop"
            except GenerationError:
                failed = True
                raise
            except MemoryError as e:
                failed = True
                raise GenerationError(
                    "Resource exhaustion during generation", reason="resource_exhausted"
                ) from e
            except Exception as e:
                failed = True
                raise GenerationError(f"Generation failed: {e}") from e
            finally:
                if stream.finish_reason is None and not failed:
                    # Consumer stopped iterating early
                    stream.finish_reason = "cancelled"
                close = getattr(backend, "aclose", None)
                if close is not None:
                    await close()
                if self._state is ModelState.GENERATING:
                    self._state = ModelState.READY
