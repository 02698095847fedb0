"""
Error taxonomy for llm-conductor.

Backend SDK exceptions are translated into a unified `BackendUnavailable`
while the original exception is preserved for full tracebacks.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

import anthropic
import openai

__all__: tuple[str, ...] = (
    "ConductorError",
    "BudgetExceeded",
    "ToolInvocationFailed",
    "BackendUnavailable",
    "ConfigurationError",
    "classify_backend_error",
)


class ConductorError(RuntimeError):
    """Base class for every error raised by llm-conductor."""


class ConfigurationError(ConductorError, ValueError):
    """Raised synchronously at the point of misconfiguration."""


class BudgetExceeded(ConductorError):
    """A request or token ceiling would be, or was, exceeded.

    Attributes:
        kind: ``"tokens"`` or ``"requests"``.
        used: Counter value before the rejected operation.
        requested: Amount the operation tried to add.
        limit: Configured ceiling.
    """

    def __init__(self, message: str, *, kind: str, used: int, requested: int, limit: int) -> None:
        super().__init__(message)
        self.kind = kind
        self.used = used
        self.requested = requested
        self.limit = limit


class ToolInvocationFailed(ConductorError):
    """An individual tool raised. Captured by the dispatcher, never surfaced."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str,
        tool_call_id: str,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.tool_call_id = tool_call_id
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc


class BackendUnavailable(ConductorError):
    """The chat call itself failed.

    Attributes:
        original_exc: The underlying backend exception.
    """

    original_exc: Exception

    def __init__(self, message: str, original_exc: Exception) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


OpenAI_APIError: Final = openai.APIError
OpenAI_APIConnectionError: Final = openai.APIConnectionError
OpenAI_RateLimitError: Final = openai.RateLimitError

Anthropic_APIError: Final = anthropic.APIError
Anthropic_APIConnectionError: Final = anthropic.APIConnectionError
Anthropic_RateLimitError: Final = anthropic.RateLimitError

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIError,
    Anthropic_APIError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIConnectionError,
    Anthropic_APIConnectionError,
    TimeoutError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_RateLimitError,
    Anthropic_RateLimitError,
)


def classify_backend_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> BackendUnavailable:
    """Wrap a backend exception in BackendUnavailable with a concise message."""
    log = logger or logging.getLogger("llm_conductor.errors")

    # Rate-limit and connection errors subclass APIError in both SDKs,
    # so the most specific tuple is checked first.
    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the backend"
    elif isinstance(exc, API_ERRORS):
        msg = "Backend reported an error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping backend exception: %s", msg, exc_info=exc)
    return BackendUnavailable(f"{msg}: {exc}", exc)
