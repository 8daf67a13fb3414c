# src/localmind/tasks/registry.py
"""Provider registry and preference-list resolution."""

from __future__ import annotations

import logging

from localmind.exceptions import ConfigError
from localmind.tasks.providers import Provider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Holds the configured providers by name.

    The default order (used when a request names no providers) follows the
    configured priority list first, then each provider's priority tier, then
    the name.
    """

    def __init__(
        self,
        providers: list[Provider] | None = None,
        priority: list[str] | None = None,
    ) -> None:
        self._providers: dict[str, Provider] = {}
        self.priority = list(priority or [])
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: Provider) -> None:
        if provider.name in self._providers:
            raise ConfigError(f"Provider '{provider.name}' is registered twice")
        self._providers[provider.name] = provider
        if not provider.available:
            logger.warning(
                "Provider '%s' has no credentials configured and will be skipped", provider.name
            )

    def get(self, name: str) -> Provider:
        try:
            return self._providers[name]
        except KeyError:
            raise ConfigError(
                f"Unknown provider '{name}'",
                suggestion=f"Configured providers: {', '.join(sorted(self._providers)) or 'none'}",
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    def default_order(self) -> list[Provider]:
        def key(provider: Provider) -> tuple[int, int, str]:
            position = (
                self.priority.index(provider.name)
                if provider.name in self.priority
                else len(self.priority)
            )
            return (position, provider.priority, provider.name)

        return sorted(self._providers.values(), key=key)

    def resolve(self, names: list[str]) -> list[Provider]:
        """Turn a preference list into providers (empty list = default order).

        Raises:
            ConfigError: If a name is not registered.
        """
        if not names:
            return self.default_order()
        return [self.get(name) for name in names]
