# src/localmind/tasks/queue.py
"""Bounded-concurrency background task queue."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from localmind.exceptions import ConfigError, TaskError, TaskExhaustedError, TaskNotFoundError
from localmind.models import GenerationTask, ProviderAttempt, TaskRequest, TaskState
from localmind.tasks.content_store import ContentStore
from localmind.tasks.fallback import ChainOutcome, FallbackChain
from localmind.tasks.registry import ProviderRegistry

if TYPE_CHECKING:
    from types import TracebackType

    from localmind.tasks.providers import Provider

logger = logging.getLogger(__name__)


class TaskQueue:
    """FIFO queue running at most ``max_concurrent`` tasks at a time.

    A fixed pool of worker coroutines pulls task ids from an asyncio.Queue;
    surplus tasks stay PENDING until a worker frees up. Each running task
    goes through the FallbackChain, and its output is written to the
    ContentStore.

    Example:
        async with TaskQueue(registry, LocalContentStore("./data/content")) as queue:
            task = queue.enqueue(TaskRequest(kind=TaskKind.IMAGE, payload={"prompt": "a fox"}))
            done = await queue.wait(task.id)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        content_store: ContentStore,
        max_concurrent: int = 3,
        cancel_grace: float = 5.0,
        chain: FallbackChain | None = None,
    ) -> None:
        """Initialize the queue (call ``start`` before tasks can run).

        Args:
            registry: Configured providers.
            content_store: Where finished outputs are written.
            max_concurrent: Maximum number of RUNNING tasks.
            cancel_grace: Seconds to wait for a running task to acknowledge
                cancellation before it is marked CANCELLED anyway.
            chain: Failover strategy (default: FallbackChain()).
        """
        if max_concurrent <= 0:
            raise ValueError(f"max_concurrent must be positive, got {max_concurrent}")
        self.registry = registry
        self.content_store = content_store
        self.max_concurrent = max_concurrent
        self.cancel_grace = cancel_grace
        self.chain = chain or FallbackChain()

        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._tasks: dict[str, GenerationTask] = {}
        self._done: dict[str, asyncio.Event] = {}
        self._runners: dict[str, asyncio.Task[ChainOutcome]] = {}
        self._active: dict[str, Provider] = {}
        self._workers: list[asyncio.Task[None]] = []
        self._background: set[asyncio.Task[bool]] = set()
        self.total_cost = 0.0

    async def __aenter__(self) -> TaskQueue:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def running_count(self) -> int:
        return sum(1 for t in self._tasks.values() if t.state is TaskState.RUNNING)

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"localmind-task-worker-{i}")
            for i in range(self.max_concurrent)
        ]
        logger.info("Task queue started with %d workers", self.max_concurrent)

    async def stop(self) -> None:
        """Cancel every unfinished task and stop the workers."""
        for task_id, task in list(self._tasks.items()):
            if not task.state.is_terminal:
                await self.cancel(task_id)
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Task queue stopped")

    def enqueue(self, request: TaskRequest) -> GenerationTask:
        """Accept a task. It starts when a worker slot is free.

        Raises:
            ConfigError: If a named provider is unknown, a duration or size
                field of the payload is not a number, or none of the
                preferred providers can take the request.
        """
        request.check_payload()
        providers = self.registry.resolve(request.providers)
        eligible = self.chain.eligible(request, providers)
        if not eligible:
            raise ConfigError(
                f"No usable provider for {request.kind.value} task "
                f"(checked: {', '.join(p.name for p in providers) or 'none'})",
                suggestion="Check provider credentials, capabilities and the budget ceiling",
            )

        task = GenerationTask(request=request, cost_estimate=eligible[0].estimate_cost(request))
        self._tasks[task.id] = task
        self._done[task.id] = asyncio.Event()
        self._queue.put_nowait(task.id)
        logger.info(
            "Enqueued %s task %s (estimate $%.4f)", request.kind.value, task.id, task.cost_estimate
        )
        return task

    def _get(self, task_id: str) -> GenerationTask:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise TaskNotFoundError(f"Task {task_id} not found") from None

    def status(self, task_id: str) -> GenerationTask:
        """Snapshot of a task's current state."""
        return self._get(task_id).model_copy(deep=True)

    def tasks(self) -> list[GenerationTask]:
        """Snapshots of every known task in enqueue order."""
        return [t.model_copy(deep=True) for t in self._tasks.values()]

    async def wait(self, task_id: str, timeout: float | None = None) -> GenerationTask:
        """Wait until a task reaches a terminal state."""
        self._get(task_id)
        await asyncio.wait_for(self._done[task_id].wait(), timeout=timeout)
        return self.status(task_id)

    async def join(self) -> None:
        """Wait until every known task is terminal."""
        await asyncio.gather(*(event.wait() for event in self._done.values()))

    def forget(self, task_id: str) -> GenerationTask:
        """Drop a terminal task from the queue's bookkeeping.

        Its saved output stays in the content store. Returns the final snapshot.

        Raises:
            TaskNotFoundError: If the task is unknown.
            TaskError: If the task is still pending or running.
        """
        task = self._get(task_id)
        if not task.state.is_terminal:
            raise TaskError(f"Task {task_id} is still {task.state.value}")
        del self._tasks[task_id]
        del self._done[task_id]
        return task

    def prune(self) -> int:
        """Forget every terminal task. Returns how many were dropped."""
        finished = [task_id for task_id, t in self._tasks.items() if t.state.is_terminal]
        for task_id in finished:
            self.forget(task_id)
        if finished:
            logger.debug("Pruned %d finished tasks", len(finished))
        return len(finished)

    async def cancel(self, task_id: str) -> GenerationTask:
        """Cancel a task.

        A PENDING task becomes CANCELLED immediately and never reaches a
        provider. A RUNNING task gets a provider-side cancel request and its
        call is cancelled; it is marked CANCELLED once that is acknowledged
        or ``cancel_grace`` seconds have passed. Terminal tasks are unchanged.
        """
        task = self._get(task_id)

        if task.state is TaskState.PENDING:
            self._finish(task, TaskState.CANCELLED)
            logger.info("Cancelled pending task %s", task_id)
            return self.status(task_id)

        if task.state is TaskState.RUNNING:
            runner = self._runners.get(task_id)
            provider = self._active.get(task_id)
            if provider is not None:
                # Started before the runner is cancelled so the provider still knows the job
                ack = asyncio.create_task(provider.cancel(task))
                self._background.add(ack)
                ack.add_done_callback(self._cancel_acknowledged)
            if runner is not None:
                runner.cancel()
                done, _ = await asyncio.wait({runner}, timeout=self.cancel_grace)
                if not done:
                    logger.warning(
                        "Task %s did not acknowledge cancellation within %.1fs",
                        task_id,
                        self.cancel_grace,
                    )
            if not task.state.is_terminal:
                self._finish(task, TaskState.CANCELLED)
                logger.info("Cancelled running task %s", task_id)

        return self.status(task_id)

    async def _worker(self, index: int) -> None:
        while True:
            task_id = await self._queue.get()
            task = self._tasks.get(task_id)
            try:
                if task is not None and task.state is TaskState.PENDING:
                    await self._execute(task)
            except Exception as e:
                logger.exception("Worker %d failed while running task %s", index, task_id)
                task.attempts.append(
                    ProviderAttempt(provider=task.provider or "-", reason="error", error=str(e))
                )
                self._finish(task, TaskState.FAILED)
            finally:
                self._queue.task_done()

    async def _execute(self, task: GenerationTask) -> None:
        task.state = TaskState.RUNNING
        task.started_at = datetime.now(UTC)

        try:
            providers = self.registry.resolve(task.request.providers)
        except ConfigError as e:
            task.attempts.append(ProviderAttempt(provider="-", reason="config", error=str(e)))
            self._finish(task, TaskState.FAILED)
            return

        def on_attempt(provider: Provider) -> None:
            self._active[task.id] = provider
            task.provider = provider.name

        runner = asyncio.create_task(self.chain.run(task, providers, on_attempt))
        self._runners[task.id] = runner
        try:
            await asyncio.wait({runner})
        finally:
            self._runners.pop(task.id, None)
            self._active.pop(task.id, None)

        if task.state.is_terminal:
            # Cancelled (and already marked) while the provider was finishing
            return
        if runner.cancelled():
            self._finish(task, TaskState.CANCELLED)
            return

        error = runner.exception()
        if error is not None:
            if not isinstance(error, TaskExhaustedError):
                task.attempts.append(
                    ProviderAttempt(provider=task.provider or "-", reason="error", error=str(error))
                )
            task.provider = None
            self._finish(task, TaskState.FAILED)
            logger.error("Task %s failed: %s", task.id, error)
            return

        outcome = runner.result()
        task.result_ref = await asyncio.to_thread(
            self.content_store.save, task, outcome.provider.name, outcome.output
        )
        task.provider = outcome.provider.name
        task.realized_cost = outcome.realized_cost
        self.total_cost += outcome.realized_cost
        self._finish(task, TaskState.COMPLETED)
        logger.info(
            "Task %s completed by %s ($%.4f)", task.id, outcome.provider.name, outcome.realized_cost
        )

    def _cancel_acknowledged(self, ack: asyncio.Task[bool]) -> None:
        self._background.discard(ack)
        if ack.cancelled():
            return
        error = ack.exception()
        if error is not None:
            logger.warning("Provider-side cancellation failed: %s", error)

    def _finish(self, task: GenerationTask, state: TaskState) -> None:
        if task.state.is_terminal:
            return
        task.state = state
        task.finished_at = datetime.now(UTC)
        self._done[task.id].set()
