# tests/tasks/test_provider_registry.py
"""Tests for the provider registry."""

import pytest

from localmind.exceptions import ConfigError
from localmind.tasks import ProviderRegistry


class TestProviderRegistry:
    def test_register_and_get(self, make_provider):
        provider = make_provider("a")
        registry = ProviderRegistry([provider])
        assert registry.get("a") is provider
        assert "a" in registry
        assert len(registry) == 1

    def test_duplicate_name(self, make_provider):
        registry = ProviderRegistry([make_provider("a")])
        with pytest.raises(ConfigError, match="registered twice"):
            registry.register(make_provider("a"))

    def test_unknown_name(self, make_provider):
        registry = ProviderRegistry([make_provider("a")])
        with pytest.raises(ConfigError) as exc_info:
            registry.get("b")
        assert "a" in exc_info.value.suggestion

    def test_default_order_by_priority_tier_then_name(self, make_provider):
        registry = ProviderRegistry(
            [make_provider("c", priority=1), make_provider("b", priority=0), make_provider("a", priority=1)]
        )
        assert [p.name for p in registry.default_order()] == ["b", "a", "c"]

    def test_priority_list_comes_first(self, make_provider):
        registry = ProviderRegistry(
            [make_provider("a"), make_provider("b"), make_provider("c")], priority=["c", "a"]
        )
        assert [p.name for p in registry.default_order()] == ["c", "a", "b"]

    def test_resolve_explicit_list(self, make_provider):
        registry = ProviderRegistry([make_provider("a"), make_provider("b")])
        assert [p.name for p in registry.resolve(["b", "a"])] == ["b", "a"]

    def test_resolve_empty_uses_default_order(self, make_provider):
        registry = ProviderRegistry([make_provider("b"), make_provider("a")])
        assert [p.name for p in registry.resolve([])] == ["a", "b"]

    def test_resolve_unknown(self, make_provider):
        registry = ProviderRegistry([make_provider("a")])
        with pytest.raises(ConfigError):
            registry.resolve(["a", "ghost"])
