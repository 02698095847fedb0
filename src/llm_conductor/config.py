"""Instance-level configuration."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Callable, Final, Mapping, Optional

from dotenv import load_dotenv

from llm_conductor.errors import ConfigurationError

__all__ = ["ConductorConfig"]

ENV_PREFIX: Final = "CONDUCTOR_"


@dataclass(frozen=True)
class ConductorConfig:
    """
    Settings for one execution loop.

    ``max_token_limit`` and ``max_request_limit`` use 0 for unlimited.
    ``tool_call_timeout`` is in seconds; ``None`` disables it.
    """

    max_token_limit: int = 4096
    max_request_limit: int = 25
    enable_parallel_tool_calls: bool = True
    max_concurrent_tool_calls: int = 3
    tool_call_delay_ms: int = 100
    tool_call_timeout: Optional[float] = 30.0
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    max_history_messages: int = 0

    def __post_init__(self) -> None:
        if self.max_token_limit < 0:
            raise ConfigurationError("max_token_limit cannot be negative")
        if self.max_request_limit < 0:
            raise ConfigurationError("max_request_limit cannot be negative")
        if self.max_concurrent_tool_calls < 1:
            raise ConfigurationError("max_concurrent_tool_calls must be at least 1")
        if self.tool_call_delay_ms < 0:
            raise ConfigurationError("tool_call_delay_ms cannot be negative")
        if self.tool_call_timeout is not None and self.tool_call_timeout <= 0:
            raise ConfigurationError("tool_call_timeout must be positive or None")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be positive")
        if self.max_history_messages < 0:
            raise ConfigurationError("max_history_messages cannot be negative")

    def replace(self, **changes: Any) -> "ConductorConfig":
        """Return a validated copy with ``changes`` applied."""
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConductorConfig":
        """
        Build a config from ``{prefix}{FIELD_NAME}`` environment variables.

        A ``.env`` file is loaded first when ``environ`` is not given.
        Unset variables keep their defaults.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        values: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            raw = environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            try:
                values[f.name] = _PARSERS[f.name](raw.strip())
            except ValueError as exc:
                raise ConfigurationError(f"Invalid value for {prefix}{f.name.upper()}: {raw!r}") from exc
        return cls(**values)


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


def _optional(parse: Callable[[str], Any]) -> Callable[[str], Any]:
    def inner(raw: str) -> Any:
        if raw.lower() in ("", "none", "null"):
            return None
        return parse(raw)

    return inner


_PARSERS: Final[dict[str, Callable[[str], Any]]] = {
    "max_token_limit": int,
    "max_request_limit": int,
    "enable_parallel_tool_calls": _parse_bool,
    "max_concurrent_tool_calls": int,
    "tool_call_delay_ms": int,
    "tool_call_timeout": _optional(float),
    "temperature": _optional(float),
    "max_tokens": _optional(int),
    "max_history_messages": int,
}
