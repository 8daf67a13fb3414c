# src/localmind/config.py
"""Configuration loading utilities for LocalMind.

This module provides configuration loading that can be used by:
- CLI commands
- External applications using LocalMind as a library

It handles:
- Finding and loading localmind.yaml config files
- Building Settings objects from the ``settings:`` section
- Building the job provider registry from the ``providers:`` section
- Creating LocalMind instances from configuration

Example localmind.yaml:

    llm_model: ollama_chat/llama3.2
    embedding_model: ollama/nomic-embed-text
    data_dir: ./localmind_data
    profile: low_memory
    settings:
      top_k: 8
      similarity_threshold: 0.25
    providers:
      - name: dalle
        type: litellm_image
        model: openai/dall-e-3
        cost_per_unit: 0.04
        api_key_env: OPENAI_API_KEY
      - name: videogen
        type: http_video
        endpoint: https://video.example.com/v1/jobs
        api_key_env: VIDEOGEN_API_KEY
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from localmind.exceptions import ConfigError
from localmind.providers.litellm import ChatModels, EmbeddingModels
from localmind.settings import PROFILES, Settings
from localmind.tasks import (
    HTTPVideoProvider,
    LiteLLMImageProvider,
    LiteLLMTextProvider,
    Provider,
    ProviderRegistry,
)

if TYPE_CHECKING:
    from localmind.localmind import LocalMind

logger = logging.getLogger(__name__)

# Default paths
DEFAULT_DATA_DIR = "./localmind_data"
CONFIG_FILES = ["localmind.yaml", "localmind.yml", ".localmindrc"]

# Valid configuration keys for validation
VALID_ROOT_KEYS = {
    "llm_model",
    "embedding_model",
    "api_base",
    "embedding_dimension",
    "data_dir",
    "profile",
    "settings",
    "providers",
}

VALID_SETTINGS_KEYS = set(Settings.model_fields)

# Keys every job provider entry may carry, plus the extra keys per type
COMMON_PROVIDER_KEYS = {"name", "type", "priority", "timeout", "api_key_env"}
PROVIDER_TYPE_KEYS: dict[str, set[str]] = {
    "litellm_image": {"model", "cost_per_unit", "max_width", "max_height"},
    "litellm_text": {"model", "cost_per_unit"},
    "http_video": {
        "endpoint",
        "model",
        "cost_per_second",
        "max_duration_seconds",
        "max_width",
        "max_height",
        "poll_interval",
    },
}


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find configuration file in current directory or parent directories.

    Args:
        start_dir: Directory to start searching from (default: cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    current = start_dir or Path.cwd()
    for _ in range(10):  # Limit search depth
        for config_name in CONFIG_FILES:
            config_path = current / config_name
            if config_path.exists():
                return config_path
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def validate_config(config: dict[str, Any], config_path: Path | None = None) -> list[str]:
    """Validate config and return warnings about unknown keys.

    Args:
        config: The loaded configuration dictionary
        config_path: Path to config file (for error messages)

    Returns:
        List of warning messages (empty if no issues)
    """
    warnings = []

    unknown_root = set(config.keys()) - VALID_ROOT_KEYS
    if unknown_root:
        path_str = str(config_path) if config_path else "config"
        warnings.append(f"Unknown config keys in {path_str}: {', '.join(sorted(unknown_root))}")

    settings = config.get("settings", {})
    if isinstance(settings, dict):
        unknown_settings = set(settings.keys()) - VALID_SETTINGS_KEYS
        if unknown_settings:
            warnings.append(f"Unknown settings keys: {', '.join(sorted(unknown_settings))}")

    providers = config.get("providers", [])
    if isinstance(providers, list):
        for entry in providers:
            if not isinstance(entry, dict):
                continue
            allowed = COMMON_PROVIDER_KEYS | PROVIDER_TYPE_KEYS.get(str(entry.get("type")), set())
            unknown = set(entry.keys()) - allowed
            if unknown:
                warnings.append(
                    f"Unknown keys for provider '{entry.get('name', '?')}': "
                    f"{', '.join(sorted(unknown))}"
                )

    return warnings


def load_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file.

    Unknown keys are reported as log warnings and otherwise ignored.

    Args:
        config_path: Explicit path to config file, or None to search

    Returns:
        Configuration dictionary (empty if no config found)

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    path = Path(config_path) if config_path is not None else find_config_file()
    if path is None:
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}: {e}", suggestion="Check the file's indentation and quoting"
        ) from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    for warning in validate_config(config, path):
        logger.warning(warning)
    return config


def build_settings(config: dict[str, Any] | None = None) -> Settings:
    """Build Settings from the ``profile`` and ``settings:`` section of a config.

    Raises:
        ConfigError: If a value is invalid or settings contradict each other.
    """
    config = config or {}
    yaml_settings = config.get("settings") or {}
    if not isinstance(yaml_settings, dict):
        raise ConfigError("'settings' must be a mapping")

    known = {k: v for k, v in yaml_settings.items() if k in VALID_SETTINGS_KEYS}
    profile = config.get("profile")
    try:
        if profile:
            if profile not in PROFILES:
                raise ConfigError(
                    f"Unknown profile '{profile}'",
                    suggestion=f"Available profiles: {', '.join(sorted(PROFILES))}",
                )
            return Settings.with_profile(profile, **known)
        return Settings(**known)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e


def _build_provider(entry: dict[str, Any], environ: Mapping[str, str]) -> Provider:
    name = entry.get("name")
    kind = entry.get("type")
    if not name:
        raise ConfigError("Every entry under 'providers' needs a 'name'")
    if kind not in PROVIDER_TYPE_KEYS:
        raise ConfigError(
            f"Unknown provider type '{kind}' for '{name}'",
            suggestion=f"Supported types: {', '.join(sorted(PROVIDER_TYPE_KEYS))}",
        )

    api_key = None
    key_env = entry.get("api_key_env")
    if key_env:
        api_key = environ.get(key_env)
        if not api_key:
            logger.warning("Provider '%s': %s is not set, provider unavailable", name, key_env)

    common: dict[str, Any] = {"api_key": api_key, "priority": int(entry.get("priority", 0))}
    if "timeout" in entry:
        common["timeout"] = float(entry["timeout"])

    try:
        if kind == "litellm_image":
            return LiteLLMImageProvider(
                name,
                entry["model"],
                cost_per_unit=float(entry.get("cost_per_unit", 0.0)),
                max_width=entry.get("max_width", 2048),
                max_height=entry.get("max_height", 2048),
                **common,
            )
        if kind == "litellm_text":
            return LiteLLMTextProvider(
                name,
                entry["model"],
                cost_per_unit=float(entry.get("cost_per_unit", 0.0)),
                **common,
            )
        optional = {
            key: entry[key]
            for key in (
                "model",
                "cost_per_second",
                "max_duration_seconds",
                "max_width",
                "max_height",
                "poll_interval",
            )
            if key in entry
        }
        return HTTPVideoProvider(name, entry["endpoint"], **optional, **common)
    except KeyError as e:
        raise ConfigError(f"Provider '{name}' ({kind}) is missing required key {e}") from e


def build_providers(
    config: dict[str, Any] | None = None,
    settings: Settings | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProviderRegistry:
    """Build the job provider registry from the ``providers:`` section.

    Credentials are read from the environment variable named by each entry's
    ``api_key_env``. A missing credential is logged and leaves the provider
    registered but unavailable.

    Raises:
        ConfigError: On unknown provider types, missing keys or duplicate names.
    """
    config = config or {}
    environ = environ if environ is not None else os.environ
    entries = config.get("providers") or []
    if not isinstance(entries, list):
        raise ConfigError("'providers' must be a list")

    priority = settings.provider_priority if settings else []
    registry = ProviderRegistry(priority=priority)
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigError("Every entry under 'providers' must be a mapping")
        registry.register(_build_provider(entry, environ))

    unknown = [name for name in priority if name not in registry]
    if unknown:
        logger.warning("provider_priority names unknown providers: %s", ", ".join(unknown))
    return registry


@dataclass
class LocalMindConfig:
    """Configuration for creating a LocalMind instance."""

    llm_model: str
    embedding_model: str
    data_dir: str
    settings: Settings
    api_base: str | None = None
    embedding_dimension: int | None = None
    job_providers: ProviderRegistry = field(default_factory=ProviderRegistry)


def get_localmind_config(
    data_dir: str | None = None,
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LocalMindConfig:
    """Get configuration for creating a LocalMind instance.

    This extracts configuration without creating the instance, so callers can
    inspect or adjust it first.

    Args:
        data_dir: Override data directory
        config_path: Override config file path
        environ: Where provider credentials are looked up (default: os.environ)

    Raises:
        ConfigError: If the configuration is invalid.
    """
    config = load_config(config_path)
    settings = build_settings(config)
    return LocalMindConfig(
        llm_model=config.get("llm_model") or ChatModels.OLLAMA_LLAMA_32,
        embedding_model=config.get("embedding_model") or EmbeddingModels.OLLAMA_NOMIC,
        data_dir=data_dir or config.get("data_dir") or DEFAULT_DATA_DIR,
        settings=settings,
        api_base=config.get("api_base"),
        embedding_dimension=config.get("embedding_dimension"),
        job_providers=build_providers(config, settings, environ),
    )


def create_localmind(config: LocalMindConfig) -> LocalMind:
    """Create a LocalMind instance from configuration."""
    from localmind.configuration import LiteLLMProvider, LocalStorage
    from localmind.localmind import LocalMind

    return LocalMind(
        provider=LiteLLMProvider(
            llm=config.llm_model,
            embedding=config.embedding_model,
            api_base=config.api_base,
            embedding_dimension=config.embedding_dimension,
        ),
        storage=LocalStorage(config.data_dir),
        settings=config.settings,
        job_providers=config.job_providers,
    )


def get_localmind(
    data_dir: str | None = None,
    config_path: str | Path | None = None,
) -> LocalMind:
    """Create a LocalMind instance based on configuration.

    This is a convenience function that combines get_localmind_config and
    create_localmind. For more control, use those functions separately.
    """
    return create_localmind(get_localmind_config(data_dir, config_path))
