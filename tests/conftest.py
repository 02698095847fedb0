"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any, AsyncIterator, Iterable, Optional

import pytest

from llm_conductor.backends import Backend
from llm_conductor.context import Context
from llm_conductor.params import ChatOptions
from llm_conductor.registry import BackendRegistry
from llm_conductor.tokens import TokenEstimator
from llm_conductor.types import ModelResponse, StreamChunk


class ScriptedBackend(Backend):
    """Backend that replays queued responses and records every call."""

    provider_name = "scripted"

    def __init__(
        self,
        responses: Iterable[ModelResponse | Exception] = (),
        *,
        stream_chunks: Optional[list[StreamChunk]] = None,
    ) -> None:
        super().__init__(name="scripted")
        self.responses = list(responses)
        self.stream_chunks = stream_chunks
        self.calls: list[tuple[str, Context, ChatOptions]] = []
        self.closed = False

    async def chat(self, model: str, context: Context, options: ChatOptions) -> ModelResponse:
        self.calls.append((model, context, options))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def supports_streaming(self) -> bool:
        return self.stream_chunks is not None

    async def chat_stream(
        self, model: str, context: Context, options: ChatOptions
    ) -> AsyncIterator[StreamChunk]:
        self.calls.append((model, context, options))
        for chunk in self.stream_chunks or []:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class FixedEncoding:
    """Stand-in for a tiktoken encoding: one token per whitespace-separated word."""

    def encode(self, text: str) -> list[Any]:
        return text.split()


@pytest.fixture
def word_estimator() -> TokenEstimator:
    return TokenEstimator(encoding_loader=lambda model: FixedEncoding())


@pytest.fixture
def make_registry():
    def factory(backend: Backend, model: str = "test-model") -> BackendRegistry:
        registry = BackendRegistry()
        registry.add_backend("scripted", backend)
        registry.set_current("scripted", model)
        return registry

    return factory
