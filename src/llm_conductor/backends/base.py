"""Backend interface consumed by the execution loop."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional, Protocol

from llm_conductor.context import Context
from llm_conductor.errors import BackendUnavailable, classify_backend_error
from llm_conductor.params import ChatOptions
from llm_conductor.types import ModelResponse, StreamChunk

__all__ = ["Backend", "SDKBackend", "RequestAdapter"]


class RequestAdapter(Protocol):
    """Protocol for adapting between the internal model and a vendor format."""

    def to_provider(self, context: Context, options: ChatOptions) -> dict[str, Any]:
        ...

    def from_provider(self, raw: Any) -> ModelResponse:
        ...

    def stream_chunk(self, raw_chunk: Any) -> StreamChunk:
        ...


class Backend(ABC):
    """
    Abstract base class for async-first chat backends.

    ``chat`` returns a complete ModelResponse; ``usage`` on it, when present,
    is authoritative for budgets. Backends that can stream override
    ``chat_stream`` and ``supports_streaming``.
    """

    provider_name: str = "unknown"

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @abstractmethod
    async def chat(self, model: str, context: Context, options: ChatOptions) -> ModelResponse:
        ...

    @property
    def supports_streaming(self) -> bool:
        return False

    def chat_stream(
        self, model: str, context: Context, options: ChatOptions
    ) -> AsyncIterator[StreamChunk]:
        raise NotImplementedError(f"{self.name} does not support streaming")

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> "Backend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class SDKBackend(Backend):
    """Backend built from a vendor SDK client plus a pure request adapter."""

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        ...

    @abstractmethod
    async def _chat_impl(self, model: str, request: dict[str, Any]) -> Any:
        """Send one non-streaming request; return the raw SDK response."""
        ...

    @abstractmethod
    def _stream_impl(self, model: str, request: dict[str, Any]) -> AsyncIterator[Any]:
        """Yield raw SDK stream events."""
        ...

    @property
    def supports_streaming(self) -> bool:
        return True

    async def chat(self, model: str, context: Context, options: ChatOptions) -> ModelResponse:
        request = self.adapter.to_provider(context, options)
        self._log(f"Sending request to {self.provider_name} model {model}", logging.DEBUG)
        try:
            raw = await self._chat_impl(model, request)
        except BackendUnavailable:
            raise
        except Exception as exc:
            raise classify_backend_error(exc, self.logger) from exc
        return self.adapter.from_provider(raw)

    async def chat_stream(
        self, model: str, context: Context, options: ChatOptions
    ) -> AsyncIterator[StreamChunk]:
        request = self.adapter.to_provider(context, options)
        self._log(f"Streaming request to {self.provider_name} model {model}", logging.DEBUG)
        try:
            async for raw in self._stream_impl(model, request):
                yield self.adapter.stream_chunk(raw)
        except BackendUnavailable:
            raise
        except Exception as exc:
            raise classify_backend_error(exc, self.logger) from exc
