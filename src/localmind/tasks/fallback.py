# src/localmind/tasks/fallback.py
"""Ordered provider failover with cost accounting.

Every job kind goes through the same FallbackChain: providers are tried in
preference order, and a provider that times out, runs out of quota or hits
a transport error hands the task to the next one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from localmind.exceptions import ProviderError, TaskExhaustedError
from localmind.models import GenerationTask, ProviderAttempt, ProviderOutput, TaskRequest
from localmind.tasks.providers import Provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainOutcome:
    """The provider that serviced a task and what it cost."""

    provider: Provider
    output: ProviderOutput
    realized_cost: float


def skip_reason(provider: Provider, request: TaskRequest) -> str | None:
    """Why a provider cannot take a request, or None if it can."""
    if not provider.available:
        return "credentials"
    if not provider.capabilities.supports(request.kind, request.payload):
        return "capability"
    if request.budget_ceiling is not None:
        if provider.estimate_cost(request) > request.budget_ceiling:
            return "budget"
    return None


class FallbackChain:
    """Runs a task against an ordered provider list until one succeeds."""

    def eligible(self, request: TaskRequest, providers: list[Provider]) -> list[Provider]:
        """Providers from the list that could take the request, in order."""
        return [p for p in providers if skip_reason(p, request) is None]

    async def run(
        self,
        task: GenerationTask,
        providers: list[Provider],
        on_attempt: Callable[[Provider], None] | None = None,
    ) -> ChainOutcome:
        """Try each provider in order.

        Failed and skipped providers are appended to ``task.attempts``.

        Args:
            task: The task being executed.
            providers: Preference list, primary first.
            on_attempt: Called with each provider right before it is invoked.

        Raises:
            TaskExhaustedError: Once every provider failed or was skipped.
        """
        request = task.request
        for provider in providers:
            reason = skip_reason(provider, request)
            if reason is not None:
                self._record(task, provider, reason, f"skipped: {reason}")
                continue

            estimate = provider.estimate_cost(request)
            if on_attempt is not None:
                on_attempt(provider)
            logger.info(
                "Task %s (%s) -> provider %s (estimated $%.4f)",
                task.id,
                request.kind.value,
                provider.name,
                estimate,
            )
            try:
                output = await asyncio.wait_for(provider.run(task), timeout=provider.timeout)
            except TimeoutError:
                self._record(task, provider, "timeout", f"no answer within {provider.timeout}s")
                continue
            except ProviderError as e:
                self._record(task, provider, e.reason, str(e))
                continue
            except Exception as e:
                logger.exception("Provider %s raised unexpectedly", provider.name)
                self._record(task, provider, "error", f"{type(e).__name__}: {e}")
                continue

            realized = output.realized_cost if output.realized_cost is not None else estimate
            return ChainOutcome(provider=provider, output=output, realized_cost=realized)

        tried = ", ".join(a.provider for a in task.attempts) or "none"
        raise TaskExhaustedError(
            f"Task {task.id} failed on every provider ({tried})", attempts=list(task.attempts)
        )

    @staticmethod
    def _record(task: GenerationTask, provider: Provider, reason: str, error: str) -> None:
        task.attempts.append(ProviderAttempt(provider=provider.name, reason=reason, error=error))
        if reason in ("credentials", "capability", "budget"):
            logger.info("Task %s skipped provider %s: %s", task.id, provider.name, reason)
        else:
            logger.warning(
                "Task %s failed on provider %s (%s), trying next: %s",
                task.id,
                provider.name,
                reason,
                error,
            )
