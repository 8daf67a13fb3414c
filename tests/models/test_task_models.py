# tests/models/test_task_models.py
"""Tests for the background task models."""

import pytest
from pydantic import ValidationError

from localmind.exceptions import ConfigError
from localmind.models import (
    GenerationTask,
    ProviderAttempt,
    ProviderCapabilities,
    TaskKind,
    TaskRequest,
    TaskState,
)


class TestProviderCapabilities:
    def test_kind_must_match(self):
        caps = ProviderCapabilities(kinds=frozenset({TaskKind.IMAGE}))
        assert caps.supports(TaskKind.IMAGE, {})
        assert not caps.supports(TaskKind.VIDEO, {})

    def test_limits(self):
        caps = ProviderCapabilities(
            kinds=frozenset({TaskKind.VIDEO}),
            max_duration_seconds=10,
            max_width=1280,
            max_height=720,
        )
        assert caps.supports(TaskKind.VIDEO, {"duration_seconds": 10, "width": 1280})
        assert not caps.supports(TaskKind.VIDEO, {"duration_seconds": 12})
        assert not caps.supports(TaskKind.VIDEO, {"width": 1920})
        assert not caps.supports(TaskKind.VIDEO, {"height": 1080})

    def test_no_limits(self):
        caps = ProviderCapabilities(kinds=frozenset({TaskKind.VIDEO}))
        assert caps.supports(TaskKind.VIDEO, {"duration_seconds": 600, "width": 8000})

    def test_numeric_strings_are_compared_as_numbers(self):
        caps = ProviderCapabilities(kinds=frozenset({TaskKind.IMAGE}), max_width=1024)
        assert caps.supports(TaskKind.IMAGE, {"width": "1024"})
        assert not caps.supports(TaskKind.IMAGE, {"width": "2048.5"})

    @pytest.mark.parametrize("value", ["wide", {"px": 720}, [720], True, float("inf")])
    def test_non_numeric_size_rejected(self, value):
        caps = ProviderCapabilities(kinds=frozenset({TaskKind.IMAGE}), max_height=720)
        with pytest.raises(ConfigError, match="height"):
            caps.supports(TaskKind.IMAGE, {"height": value})

    def test_non_numeric_size_rejected_without_limits(self):
        request = TaskRequest(kind=TaskKind.VIDEO, payload={"duration_seconds": "long"})
        with pytest.raises(ConfigError, match="duration_seconds"):
            request.check_payload()


class TestTaskState:
    @pytest.mark.parametrize(
        ("state", "terminal"),
        [
            (TaskState.PENDING, False),
            (TaskState.RUNNING, False),
            (TaskState.COMPLETED, True),
            (TaskState.FAILED, True),
            (TaskState.CANCELLED, True),
        ],
    )
    def test_is_terminal(self, state, terminal):
        assert state.is_terminal is terminal


class TestGenerationTask:
    def test_defaults(self):
        task = GenerationTask(request=TaskRequest(kind=TaskKind.TEXT))
        assert task.state is TaskState.PENDING
        assert task.kind is TaskKind.TEXT
        assert task.result() is None
        assert task.failure() is None

    def test_result_when_completed(self):
        task = GenerationTask(
            request=TaskRequest(kind=TaskKind.IMAGE),
            state=TaskState.COMPLETED,
            provider="dalle",
            realized_cost=0.04,
            result_ref="/tmp/out.json",
        )
        result = task.result()
        assert result.provider == "dalle"
        assert result.output_ref == "/tmp/out.json"
        assert result.realized_cost == 0.04

    def test_failure_keeps_last_error_per_provider(self):
        task = GenerationTask(
            request=TaskRequest(kind=TaskKind.IMAGE),
            state=TaskState.FAILED,
            attempts=[
                ProviderAttempt(provider="a", reason="timeout", error="first"),
                ProviderAttempt(provider="b", reason="quota", error="out of credits"),
                ProviderAttempt(provider="a", reason="transport", error="second"),
            ],
        )
        assert task.failure().errors == {"a": "second", "b": "out of credits"}

    def test_negative_budget_rejected(self):
        with pytest.raises(ValidationError):
            TaskRequest(kind=TaskKind.IMAGE, budget_ceiling=-1)
