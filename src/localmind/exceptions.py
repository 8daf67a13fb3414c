# src/localmind/exceptions.py
"""Exception hierarchy for LocalMind.

Every error raised by the library derives from LocalMindError so callers can
catch the whole family at the application boundary. Errors that are shown to
an end user carry a short ``reason`` string alongside the message.
"""

from __future__ import annotations


class LocalMindError(Exception):
    """Base exception for LocalMind."""

    reason: str = "error"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason


class IngestionError(LocalMindError):
    """A document could not be read or chunked (empty, undecodable, missing)."""

    reason = "unreadable"


class EmbeddingError(LocalMindError):
    """The embedding model is unavailable or produced an invalid vector."""

    reason = "embedding_unavailable"


class RetrievalError(LocalMindError):
    """The vector store or lexical index is unavailable."""

    reason = "store_unavailable"


class GenerationError(LocalMindError):
    """Generation could not start or failed mid-stream.

    Partial output of the failing call is discarded by callers.
    """

    reason = "generation_failed"


class TaskError(LocalMindError):
    """Base class for background task failures."""

    reason = "task_failed"


class ProviderError(TaskError):
    """A provider call failed in a way that warrants trying the next provider."""

    def __init__(self, message: str, *, provider: str | None = None, reason: str | None = None):
        super().__init__(message, reason=reason)
        self.provider = provider


class ProviderTimeoutError(ProviderError):
    """The provider did not answer within its declared timeout."""

    reason = "timeout"


class ProviderQuotaError(ProviderError):
    """The provider rejected the call for rate limit or quota reasons."""

    reason = "quota"


class ProviderTransportError(ProviderError):
    """Network or protocol failure talking to the provider."""

    reason = "transport"


class TaskExhaustedError(TaskError):
    """Every provider in the preference list failed or was skipped."""

    reason = "providers_exhausted"

    def __init__(self, message: str, attempts: list | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts or []


class TaskNotFoundError(TaskError):
    """No task is known under the given id."""

    reason = "not_found"


class ConfigError(LocalMindError):
    """Invalid configuration, or a required credential or path is missing."""

    reason = "config"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.suggestion = suggestion


class SessionNotFoundError(LocalMindError):
    """No session is known under the given id."""

    reason = "session_not_found"
