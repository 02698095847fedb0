from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional, Self

from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage

from llm_conductor.adapters import AnthropicRequestAdapter
from llm_conductor.context import Context
from llm_conductor.errors import BackendUnavailable, classify_backend_error
from llm_conductor.params import ChatOptions
from llm_conductor.types import StreamChunk, Usage

from .base import RequestAdapter, SDKBackend

__all__ = ["AnthropicBackend"]


class AnthropicBackend(SDKBackend):
    """
    Anthropic messages backend (async only).

    Use ``AnthropicBackend.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    provider_name = "anthropic"

    def __init__(
        self,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(logger=logger, name=name)
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        client: AsyncAnthropic,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """Wrap an existing ``AsyncAnthropic`` client."""
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicBackend.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )
        self = cls.__new__(cls)  # bypass __init__
        SDKBackend.__init__(self, logger=logger, name=name)
        self._client = client
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(self, model: str, request: dict[str, Any]) -> AnthropicMessage:
        return await self._client.messages.create(model=model, **request)

    async def _stream_impl(self, model: str, request: dict[str, Any]) -> AsyncIterator[Any]:
        async with self._client.messages.stream(model=model, **request) as stream:
            async for event in stream:
                yield event

    async def chat_stream(
        self, model: str, context: Context, options: ChatOptions
    ) -> AsyncIterator[StreamChunk]:
        # Usage arrives split across message_start and message_delta events
        request = self.adapter.to_provider(context, options)
        self._log(f"Streaming request to anthropic model {model}", logging.DEBUG)
        input_tokens = output_tokens = 0
        seen_usage = False
        try:
            async for event in self._stream_impl(model, request):
                kind = getattr(event, "type", None)
                if kind == "message_start":
                    usage = getattr(event.message, "usage", None)
                    if usage is not None:
                        seen_usage = True
                        input_tokens = usage.input_tokens or 0
                        output_tokens = usage.output_tokens or 0
                elif kind == "message_delta":
                    usage = getattr(event, "usage", None)
                    if usage is not None:
                        seen_usage = True
                        output_tokens = usage.output_tokens or output_tokens
                chunk = self.adapter.stream_chunk(event)
                if chunk.content:
                    yield chunk
        except BackendUnavailable:
            raise
        except Exception as exc:
            raise classify_backend_error(exc, self.logger) from exc

        if seen_usage:
            yield StreamChunk(usage=Usage.of(input_tokens, output_tokens))
