from __future__ import annotations

import os
from enum import StrEnum
from typing import Final, Mapping, Optional

from dotenv import load_dotenv

from llm_conductor.errors import ConfigurationError

from .base import Backend, RequestAdapter, SDKBackend


class Provider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
}


def get_api_key(provider: Provider, *, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the API key for *provider* or raise ConfigurationError."""
    try:
        env_var = _ENV_VARS[Provider(provider)]
    except (KeyError, ValueError):
        raise ConfigurationError(f"No config for {provider!s}") from None

    if environ is None:
        load_dotenv()
        environ = os.environ
    try:
        return environ[env_var]
    except KeyError as exc:
        raise ConfigurationError(f"{env_var} missing") from exc


__all__ = ["Backend", "SDKBackend", "RequestAdapter", "Provider", "get_api_key"]
