from __future__ import annotations

import logging
from typing import Any, Final

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from llm_conductor.backends import Backend, Provider, get_api_key
from llm_conductor.backends.anthropic import AnthropicBackend
from llm_conductor.backends.openai import OpenAIBackend
from llm_conductor.errors import ConfigurationError

__all__ = ["create_backend"]

_CLIENT_KWARGS: Final = frozenset({"name"})

_BACKEND_REGISTRY: Final[dict[Provider, type[OpenAIBackend] | type[AnthropicBackend]]] = {
    Provider.OPENAI: OpenAIBackend,
    Provider.ANTHROPIC: AnthropicBackend,
}


def create_backend(
    provider: Provider | str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: Any,
) -> Backend:
    """
    Factory for creating any supported backend.

    Args:
        provider: Which provider to use (OPENAI, ANTHROPIC).
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured client instance to use.
            - For Provider.OPENAI: an AsyncOpenAI instance
            - For Provider.ANTHROPIC: an AsyncAnthropic instance
        logger: Optional custom logger.
        **provider_kwargs: Extra args passed through (timeout, max_retries, base_url, name).
            With ``client`` only ``name`` is accepted; the client carries its own settings.
    """
    try:
        backend_cls = _BACKEND_REGISTRY[Provider(provider)]
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(f"Unsupported provider: {provider}") from exc

    if client is not None:  # use caller-supplied client verbatim
        unsupported = sorted(set(provider_kwargs) - _CLIENT_KWARGS)
        if unsupported:
            raise ConfigurationError(
                f"Options not supported with a pre-configured client: {', '.join(unsupported)}"
            )
        return backend_cls.from_client(client, logger=logger, **provider_kwargs)

    key = api_key or get_api_key(Provider(provider))
    return backend_cls(api_key=key, logger=logger, **provider_kwargs)
