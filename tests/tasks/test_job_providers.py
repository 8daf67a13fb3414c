# tests/tasks/test_job_providers.py
"""Tests for the LiteLLM and HTTP job providers."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import litellm
import pytest

from localmind.exceptions import (
    ProviderError,
    ProviderQuotaError,
    ProviderTimeoutError,
    ProviderTransportError,
)
from localmind.models import GenerationTask, TaskKind, TaskRequest
from localmind.tasks import (
    HTTPVideoProvider,
    LiteLLMImageProvider,
    LiteLLMTextProvider,
    map_litellm_error,
)

ENDPOINT = "https://video.example.com/v1/jobs"


def make_task(kind: TaskKind, **payload) -> GenerationTask:
    return GenerationTask(request=TaskRequest(kind=kind, payload={"prompt": "a fox", **payload}))


class VideoAPI:
    """In-memory job API served through httpx.MockTransport."""

    def __init__(self, polls_until_done: int = 1, final: dict | None = None, post_status: int = 200):
        self.polls_until_done = polls_until_done
        self.final = final or {"status": "completed", "video_url": "https://cdn/fox.mp4", "cost": 0.11}
        self.post_status = post_status
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            if self.post_status != 200:
                return httpx.Response(self.post_status, json={"error": "nope"})
            return httpx.Response(200, json={"id": "job-1", "status": "queued"})
        if request.method == "DELETE":
            return httpx.Response(204)
        self.polls_until_done -= 1
        if self.polls_until_done > 0:
            return httpx.Response(200, json={"id": "job-1", "status": "running"})
        return httpx.Response(200, json={"id": "job-1", **self.final})

    def provider(self, **kwargs) -> HTTPVideoProvider:
        return HTTPVideoProvider(
            "videogen",
            ENDPOINT,
            api_key="secret",
            poll_interval=0.0,
            transport=httpx.MockTransport(self.handler),
            **kwargs,
        )


class TestHTTPVideoProvider:
    @pytest.mark.asyncio
    async def test_creates_and_polls_job(self):
        api = VideoAPI(polls_until_done=2)
        output = await api.provider().run(make_task(TaskKind.VIDEO, duration_seconds=4))

        assert output.data["video_url"] == "https://cdn/fox.mp4"
        assert output.data["job_id"] == "job-1"
        assert output.realized_cost == pytest.approx(0.11)
        assert [r.method for r in api.requests] == ["POST", "GET", "GET"]

        body = json.loads(api.requests[0].content)
        assert body["prompt"] == "a fox"
        assert body["duration_seconds"] == 4
        assert body["width"] == 1024 and body["height"] == 576
        assert api.requests[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_estimate_per_second(self):
        provider = VideoAPI().provider(cost_per_second=0.05)
        request = TaskRequest(kind=TaskKind.VIDEO, payload={"prompt": "x", "duration_seconds": 6})
        assert provider.estimate_cost(request) == pytest.approx(0.3)

    @pytest.mark.asyncio
    async def test_capabilities(self):
        provider = VideoAPI().provider(max_duration_seconds=10)
        caps = provider.capabilities
        assert caps.supports(TaskKind.VIDEO, {"duration_seconds": 10})
        assert not caps.supports(TaskKind.VIDEO, {"duration_seconds": 11})
        assert not caps.supports(TaskKind.IMAGE, {})

    @pytest.mark.asyncio
    async def test_requires_credentials(self):
        provider = HTTPVideoProvider("videogen", ENDPOINT)
        assert not provider.available

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "error_type"),
        [(429, ProviderQuotaError), (402, ProviderQuotaError), (503, ProviderTransportError)],
    )
    async def test_http_errors_mapped(self, status, error_type):
        provider = VideoAPI(post_status=status).provider()
        with pytest.raises(error_type):
            await provider.run(make_task(TaskKind.VIDEO))

    @pytest.mark.asyncio
    async def test_auth_error(self):
        provider = VideoAPI(post_status=401).provider()
        with pytest.raises(ProviderError) as exc_info:
            await provider.run(make_task(TaskKind.VIDEO))
        assert exc_info.value.reason == "credentials"

    @pytest.mark.asyncio
    async def test_timeout_mapped(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = HTTPVideoProvider(
            "videogen", ENDPOINT, api_key="k", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(ProviderTimeoutError):
            await provider.run(make_task(TaskKind.VIDEO))

    @pytest.mark.asyncio
    async def test_failed_job(self):
        api = VideoAPI(final={"status": "failed", "error": "content policy"})
        with pytest.raises(ProviderError, match="content policy"):
            await api.provider().run(make_task(TaskKind.VIDEO))

    @pytest.mark.asyncio
    async def test_cancel_running_job(self):
        api = VideoAPI(polls_until_done=10_000)
        provider = api.provider()
        provider.poll_interval = 0.01
        task = make_task(TaskKind.VIDEO)

        run = asyncio.create_task(provider.run(task))
        for _ in range(100):
            if task.id in provider._jobs:
                break
            await asyncio.sleep(0.01)

        assert await provider.cancel(task) is True
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run
        assert any(r.method == "DELETE" and r.url.path.endswith("/job-1") for r in api.requests)

    @pytest.mark.asyncio
    async def test_cancel_unknown_job(self):
        assert await VideoAPI().provider().cancel(make_task(TaskKind.VIDEO)) is False


class TestLiteLLMImageProvider:
    @pytest.mark.asyncio
    @patch("localmind.tasks.providers.litellm.aimage_generation", new_callable=AsyncMock)
    async def test_run(self, mock_generate):
        mock_generate.return_value = MagicMock(
            data=[MagicMock(url="https://img/1.png", b64_json=None)]
        )
        provider = LiteLLMImageProvider("dalle", "openai/dall-e-3", api_key="k")

        output = await provider.run(make_task(TaskKind.IMAGE, width=1024, height=1024))

        assert output.data["images"] == [{"url": "https://img/1.png", "b64_json": None}]
        kwargs = mock_generate.call_args.kwargs
        assert kwargs["model"] == "openai/dall-e-3"
        assert kwargs["size"] == "1024x1024"
        assert kwargs["api_key"] == "k"

    @pytest.mark.asyncio
    @patch("localmind.tasks.providers.litellm.aimage_generation", new_callable=AsyncMock)
    async def test_rate_limit_becomes_quota_error(self, mock_generate):
        mock_generate.side_effect = litellm.RateLimitError(
            message="slow down", llm_provider="openai", model="dall-e-3"
        )
        provider = LiteLLMImageProvider("dalle", "openai/dall-e-3", api_key="k")
        with pytest.raises(ProviderQuotaError):
            await provider.run(make_task(TaskKind.IMAGE))

    def test_units_are_images(self):
        provider = LiteLLMImageProvider("dalle", "m", cost_per_unit=0.04)
        request = TaskRequest(kind=TaskKind.IMAGE, payload={"prompt": "x", "n": 3})
        assert provider.estimate_cost(request) == pytest.approx(0.12)


class TestLiteLLMTextProvider:
    @pytest.mark.asyncio
    @patch("localmind.tasks.providers.litellm.completion_cost")
    @patch("localmind.tasks.providers.litellm.acompletion", new_callable=AsyncMock)
    async def test_run_reports_realized_cost(self, mock_completion, mock_cost):
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content="A long essay"))]
        mock_completion.return_value = response
        mock_cost.return_value = 0.0042

        provider = LiteLLMTextProvider("writer", "openai/gpt-5-mini", api_key="k")
        output = await provider.run(make_task(TaskKind.TEXT, max_tokens=500))

        assert output.data["text"] == "A long essay"
        assert output.realized_cost == pytest.approx(0.0042)
        assert mock_completion.call_args.kwargs["max_tokens"] == 500

    @pytest.mark.asyncio
    @patch("localmind.tasks.providers.litellm.completion_cost")
    @patch("localmind.tasks.providers.litellm.acompletion", new_callable=AsyncMock)
    async def test_unknown_pricing_leaves_cost_unset(self, mock_completion, mock_cost):
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content="text"))]
        mock_completion.return_value = response
        mock_cost.side_effect = Exception("model not mapped")

        provider = LiteLLMTextProvider("writer", "custom/model", api_key="k")
        output = await provider.run(make_task(TaskKind.TEXT))
        assert output.realized_cost is None

    @pytest.mark.asyncio
    @patch("localmind.tasks.providers.litellm.acompletion", new_callable=AsyncMock)
    async def test_empty_completion(self, mock_completion):
        mock_completion.return_value = MagicMock(choices=[])
        provider = LiteLLMTextProvider("writer", "m", api_key="k")
        with pytest.raises(ProviderError, match="empty completion"):
            await provider.run(make_task(TaskKind.TEXT))


class TestMapLiteLLMError:
    def test_timeout(self):
        error = litellm.Timeout(message="slow", model="m", llm_provider="openai")
        assert isinstance(map_litellm_error(error, "p"), ProviderTimeoutError)

    def test_connection(self):
        error = litellm.APIConnectionError(message="refused", llm_provider="openai", model="m")
        assert isinstance(map_litellm_error(error, "p"), ProviderTransportError)

    def test_auth(self):
        error = litellm.AuthenticationError(message="bad key", llm_provider="openai", model="m")
        mapped = map_litellm_error(error, "p")
        assert mapped.reason == "credentials"
        assert mapped.provider == "p"

    def test_other(self):
        mapped = map_litellm_error(ValueError("weird"), "p")
        assert type(mapped) is ProviderError
        assert "weird" in str(mapped)
