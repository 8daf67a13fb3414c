# src/localmind/tasks/providers.py
"""Job providers: external services that run image, video and text tasks."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
import litellm

from localmind.exceptions import (
    ProviderError,
    ProviderQuotaError,
    ProviderTimeoutError,
    ProviderTransportError,
)
from localmind.models import (
    GenerationTask,
    ProviderCapabilities,
    ProviderOutput,
    TaskKind,
    TaskRequest,
)
from localmind.models.task import payload_number

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_WIDTH = 1024
DEFAULT_VIDEO_HEIGHT = 576
DEFAULT_VIDEO_SECONDS = 5
DEFAULT_VIDEO_FPS = 24
DEFAULT_VIDEO_QUALITY = "hd"
DEFAULT_COST_PER_VIDEO_SECOND = 0.02


class Provider(ABC):
    """An external service able to run background generation tasks.

    Providers are configured externally and are read-only to the core.
    ``run`` must raise a ProviderError subclass for failures that should
    trigger failover to the next provider.
    """

    def __init__(
        self,
        name: str,
        *,
        capabilities: ProviderCapabilities,
        priority: int = 0,
        cost_per_unit: float = 0.0,
        timeout: float = 300.0,
        api_key: str | None = None,
        requires_credentials: bool = False,
    ) -> None:
        """Initialize the provider.

        Args:
            name: Unique identifier used in preference lists.
            capabilities: Job kinds and limits the provider accepts.
            priority: Tier used for default ordering (lower runs first).
            cost_per_unit: Price of one unit (see ``units``), in USD.
            timeout: Seconds after which a call is treated as failed.
            api_key: Credential passed to the service.
            requires_credentials: If True, the provider is unavailable without api_key.
        """
        self.name = name
        self.capabilities = capabilities
        self.priority = priority
        self.cost_per_unit = cost_per_unit
        self.timeout = timeout
        self.api_key = api_key
        self.requires_credentials = requires_credentials

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"

    @property
    def available(self) -> bool:
        """Whether the provider has the credentials it needs."""
        return not self.requires_credentials or bool(self.api_key)

    def units(self, request: TaskRequest) -> float:
        """Billable units for a request. Default: one unit per request."""
        return 1.0

    def estimate_cost(self, request: TaskRequest) -> float:
        """Pre-flight cost estimate in USD."""
        return self.cost_per_unit * self.units(request)

    @abstractmethod
    async def run(self, task: GenerationTask) -> ProviderOutput:
        """Execute the task.

        Raises:
            ProviderError: On timeout, quota or transport failures.
        """
        ...

    async def cancel(self, task: GenerationTask) -> bool:
        """Best-effort provider-side cancellation. Returns True if acknowledged."""
        return False


def map_litellm_error(error: Exception, provider: str) -> ProviderError:
    """Translate a LiteLLM exception into the provider error taxonomy."""
    message = f"{provider}: {error}"
    if isinstance(error, litellm.Timeout):
        return ProviderTimeoutError(message, provider=provider)
    if isinstance(error, litellm.RateLimitError):
        return ProviderQuotaError(message, provider=provider)
    if isinstance(error, litellm.AuthenticationError):
        return ProviderError(message, provider=provider, reason="credentials")
    if isinstance(error, (litellm.APIConnectionError, litellm.ServiceUnavailableError)):
        return ProviderTransportError(message, provider=provider)
    return ProviderError(message, provider=provider, reason="provider_error")


class LiteLLMImageProvider(Provider):
    """Image generation through ``litellm.aimage_generation``.

    Payload keys: ``prompt`` (required), ``n``, ``width``, ``height``.
    One unit is one image.
    """

    def __init__(
        self,
        name: str,
        model: str,
        *,
        max_width: int | None = 2048,
        max_height: int | None = 2048,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("requires_credentials", True)
        super().__init__(
            name,
            capabilities=ProviderCapabilities(
                kinds=frozenset({TaskKind.IMAGE}), max_width=max_width, max_height=max_height
            ),
            **kwargs,
        )
        self.model = model

    def units(self, request: TaskRequest) -> float:
        return float(request.payload.get("n", 1))

    async def run(self, task: GenerationTask) -> ProviderOutput:
        payload = task.request.payload
        kwargs: dict[str, Any] = {
            "model": self.model,
            "prompt": payload["prompt"],
            "n": int(payload.get("n", 1)),
        }
        if "width" in payload and "height" in payload:
            kwargs["size"] = f"{payload['width']}x{payload['height']}"
        if self.api_key:
            kwargs["api_key"] = self.api_key

        try:
            response = await litellm.aimage_generation(**kwargs)
        except Exception as e:
            raise map_litellm_error(e, self.name) from e

        images = [
            {"url": getattr(item, "url", None), "b64_json": getattr(item, "b64_json", None)}
            for item in response.data
        ]
        return ProviderOutput(data={"model": self.model, "images": images})


class LiteLLMTextProvider(Provider):
    """Long-form text generation through a hosted model via ``litellm.acompletion``.

    Payload keys: ``prompt`` (required), ``max_tokens``.
    One unit is one thousand requested output tokens.
    """

    def __init__(self, name: str, model: str, **kwargs: Any) -> None:
        kwargs.setdefault("requires_credentials", True)
        super().__init__(
            name, capabilities=ProviderCapabilities(kinds=frozenset({TaskKind.TEXT})), **kwargs
        )
        self.model = model

    def units(self, request: TaskRequest) -> float:
        return float(request.payload.get("max_tokens", 1000)) / 1000.0

    async def run(self, task: GenerationTask) -> ProviderOutput:
        payload = task.request.payload
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": payload["prompt"]}],
            "drop_params": True,
        }
        if "max_tokens" in payload:
            kwargs["max_tokens"] = int(payload["max_tokens"])
        if self.api_key:
            kwargs["api_key"] = self.api_key

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            raise map_litellm_error(e, self.name) from e

        if not response.choices or response.choices[0].message.content is None:
            raise ProviderError(f"{self.name}: empty completion", provider=self.name)

        realized: float | None = None
        try:
            realized = float(litellm.completion_cost(completion_response=response))
        except Exception as e:
            # Unknown pricing for the model; the estimate is used instead
            logger.debug("No cost data for %s: %s", self.model, e)

        return ProviderOutput(
            data={"model": self.model, "text": str(response.choices[0].message.content)},
            realized_cost=realized,
        )


class HTTPVideoProvider(Provider):
    """Video generation against a generic JSON job API.

    ``POST {endpoint}`` creates a job and returns ``{"id", "status", ...}``.
    While the status is not terminal, ``GET {endpoint}/{id}`` is polled.
    ``DELETE {endpoint}/{id}`` cancels a job. A finished job carries
    ``video_url`` and optionally the realized ``cost``.

    Payload keys: ``prompt`` (required), ``duration_seconds``, ``width``,
    ``height``, ``fps``, ``quality``. One unit is one second of video.
    """

    def __init__(
        self,
        name: str,
        endpoint: str,
        *,
        model: str | None = None,
        cost_per_second: float = DEFAULT_COST_PER_VIDEO_SECOND,
        max_duration_seconds: float | None = 10.0,
        max_width: int | None = 1920,
        max_height: int | None = 1080,
        poll_interval: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("requires_credentials", True)
        super().__init__(
            name,
            capabilities=ProviderCapabilities(
                kinds=frozenset({TaskKind.VIDEO}),
                max_duration_seconds=max_duration_seconds,
                max_width=max_width,
                max_height=max_height,
            ),
            cost_per_unit=cost_per_second,
            **kwargs,
        )
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self.poll_interval = poll_interval
        self._transport = transport
        self._jobs: dict[str, str] = {}

    def units(self, request: TaskRequest) -> float:
        duration = payload_number(request.payload, "duration_seconds")
        return DEFAULT_VIDEO_SECONDS if duration is None else duration

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(headers=headers, timeout=self.timeout, transport=self._transport)

    def _job_body(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = {
            "prompt": payload["prompt"],
            "duration_seconds": payload.get("duration_seconds", DEFAULT_VIDEO_SECONDS),
            "width": payload.get("width", DEFAULT_VIDEO_WIDTH),
            "height": payload.get("height", DEFAULT_VIDEO_HEIGHT),
            "fps": payload.get("fps", DEFAULT_VIDEO_FPS),
            "quality": payload.get("quality", DEFAULT_VIDEO_QUALITY),
        }
        if self.model:
            body["model"] = self.model
        return body

    def _map_http_error(self, error: httpx.HTTPError) -> ProviderError:
        message = f"{self.name}: {error}"
        if isinstance(error, httpx.TimeoutException):
            return ProviderTimeoutError(message, provider=self.name)
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            logger.error("[%s] HTTP %d: %s", self.name, status, error.response.text)
            if status in (402, 429):
                return ProviderQuotaError(message, provider=self.name)
            if status in (401, 403):
                return ProviderError(message, provider=self.name, reason="credentials")
            if status >= 500:
                return ProviderTransportError(message, provider=self.name)
            return ProviderError(message, provider=self.name, reason="rejected")
        return ProviderTransportError(message, provider=self.name)

    async def run(self, task: GenerationTask) -> ProviderOutput:
        async with self._client() as client:
            try:
                response = await client.post(self.endpoint, json=self._job_body(task.request.payload))
                response.raise_for_status()
                job = response.json()
                job_id = str(job.get("id", ""))
                if job_id:
                    self._jobs[task.id] = job_id

                while job.get("status") not in ("completed", "succeeded", "failed", "cancelled"):
                    if not job_id:
                        raise ProviderError(f"{self.name}: job has no id", provider=self.name)
                    await asyncio.sleep(self.poll_interval)
                    response = await client.get(f"{self.endpoint}/{job_id}")
                    response.raise_for_status()
                    job = response.json()
            except httpx.HTTPError as e:
                raise self._map_http_error(e) from e
            except ValueError as e:
                raise ProviderTransportError(
                    f"{self.name}: invalid JSON response: {e}", provider=self.name
                ) from e
            finally:
                self._jobs.pop(task.id, None)

        if job.get("status") in ("failed", "cancelled"):
            raise ProviderError(
                f"{self.name}: job {job.get('id')} {job.get('status')}: {job.get('error', '')}",
                provider=self.name,
            )

        cost = job.get("cost")
        return ProviderOutput(
            data={
                "job_id": job.get("id"),
                "video_url": job.get("video_url") or job.get("url"),
                "duration_seconds": self.units(task.request),
            },
            realized_cost=float(cost) if cost is not None else None,
        )

    async def cancel(self, task: GenerationTask) -> bool:
        job_id = self._jobs.get(task.id)
        if job_id is None:
            return False
        async with self._client() as client:
            try:
                response = await client.delete(f"{self.endpoint}/{job_id}")
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("[%s] Cancel of job %s failed: %s", self.name, job_id, e)
                return False
        logger.info("[%s] Cancelled job %s", self.name, job_id)
        return True
