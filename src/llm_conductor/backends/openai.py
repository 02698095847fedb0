from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional, Self

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion, ChatCompletionChunk

from llm_conductor.adapters import OpenAIRequestAdapter

from .base import RequestAdapter, SDKBackend

__all__ = ["OpenAIBackend"]


class OpenAIBackend(SDKBackend):
    """
    OpenAI chat completions backend (async only).

    Use ``OpenAIBackend.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    provider_name = "openai"

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
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = OpenAIRequestAdapter()

    @classmethod
    def from_client(
        cls,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """Wrap an already configured ``AsyncOpenAI`` client."""
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"OpenAIBackend.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )
        self = cls.__new__(cls)  # bypass __init__
        SDKBackend.__init__(self, logger=logger, name=name)
        self._client = client
        self._adapter = OpenAIRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(self, model: str, request: dict[str, Any]) -> ChatCompletion:
        return await self._client.chat.completions.create(model=model, **request)

    async def _stream_impl(
        self, model: str, request: dict[str, Any]
    ) -> AsyncIterator[ChatCompletionChunk]:
        stream = await self._client.chat.completions.create(
            model=model,
            stream=True,
            stream_options={"include_usage": True},
            **request,
        )
        async for chunk in stream:
            yield chunk
