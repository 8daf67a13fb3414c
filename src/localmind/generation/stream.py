# src/localmind/generation/stream.py
"""Token streams and cooperative cancellation."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Literal

from localmind.exceptions import GenerationError

if TYPE_CHECKING:
    from types import TracebackType

FinishReason = Literal["stop", "length", "cancelled"]


class CancellationToken:
    """A flag checked by producers between increments.

    Cancelling is idempotent and never raises into the producer; the
    producer notices at its next check and stops.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for callback in self._callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` when cancelled (immediately if already cancelled)."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)


class TokenStream:
    """A finite, non-restartable async sequence of text increments.

    Iterate it once with ``async for``. A second iteration raises
    GenerationError. ``finish_reason`` is set once the stream has ended:
    "stop" (backend finished), "length" (output limit reached) or
    "cancelled".

    Example:
        stream = engine.generate_stream(prompt, params)
        async with stream:
            async for token in stream:
                print(token, end="")
        print(stream.finish_reason)
    """

    def __init__(
        self,
        producer: Callable[[TokenStream], AsyncIterator[str]],
        cancel: CancellationToken | None = None,
    ) -> None:
        self._producer = producer
        self._iterator: AsyncIterator[str] | None = None
        self.cancel_token = cancel or CancellationToken()
        self.finish_reason: FinishReason | None = None
        self._parts: list[str] = []

    def __aiter__(self) -> AsyncIterator[str]:
        if self._iterator is not None:
            raise GenerationError("Token stream has already been consumed")
        self._iterator = self._producer(self)
        return self._iterator

    async def __aenter__(self) -> TokenStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop production and release the generation slot."""
        iterator = self._iterator
        if iterator is None:
            # Never started; make sure it can't be started later
            self._iterator = _exhausted()
            return
        close = getattr(iterator, "aclose", None)
        if close is not None:
            await close()

    def cancel(self) -> None:
        """Request cancellation; no increment is produced after the next check."""
        self.cancel_token.cancel()

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.cancelled

    @property
    def text(self) -> str:
        """Everything produced so far."""
        return "".join(self._parts)

    def _record(self, piece: str) -> None:
        self._parts.append(piece)


async def _exhausted() -> AsyncIterator[str]:
    return
    yield  # pragma: no cover
