"""
Per-call option handling for llm-conductor.

Public API
- Callers pass ``options`` to ``ExecutionLoop.run`` as a ``RunOptions`` or a
  plain mapping.

Contract
- Recognized keys:
  system_prompt: str
  temperature: float
  max_tokens: int
  function_call_mode: "auto" | "force" | "disabled"
  forced_function: str, required when function_call_mode is "force"

- Unknown keys are rejected with ConfigurationError rather than forwarded to
  the backend.
- Per-call values override the instance defaults from ConductorConfig.
"""

from __future__ import annotations

import dataclasses
from dataclasses import asdict, dataclass
from typing import Any, Final, Literal, Mapping, Optional, Sequence

from llm_conductor.config import ConductorConfig
from llm_conductor.errors import ConfigurationError

__all__ = ["RunOptions", "ChatOptions", "normalize_options", "merge_chat_options"]

FunctionCallMode = Literal["auto", "force", "disabled"]
FUNCTION_CALL_MODES: Final = ("auto", "force", "disabled")


@dataclass(frozen=True)
class RunOptions:
    """Options for a single turn."""

    system_prompt: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    function_call_mode: FunctionCallMode = "auto"
    forced_function: Optional[str] = None

    def __post_init__(self) -> None:
        _check_mode(self.function_call_mode, self.forced_function)


@dataclass
class ChatOptions:
    """Options forwarded to a backend for one chat call."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    tools: Optional[list[dict[str, Any]]] = None
    function_call_mode: FunctionCallMode = "auto"
    forced_function: Optional[str] = None

    def __post_init__(self) -> None:
        _check_mode(self.function_call_mode, self.forced_function)

    @property
    def tools_enabled(self) -> bool:
        return bool(self.tools) and self.function_call_mode != "disabled"

    def as_dict(self, exclude_none: bool = True) -> dict[str, Any]:
        """
        Convert to dictionary, optionally excluding None values.

        Args:
            exclude_none: If True, exclude fields with None values

        Returns:
            Dictionary representation of the options
        """
        result = asdict(self)
        if exclude_none:
            return {k: v for k, v in result.items() if v is not None}
        return result

    def copy(self, **kwargs: Any) -> "ChatOptions":
        """Create a copy of these options with overrides applied."""
        return dataclasses.replace(self, **kwargs)


_RUN_OPTION_KEYS: Final = frozenset(f.name for f in dataclasses.fields(RunOptions))


def normalize_options(options: RunOptions | Mapping[str, Any] | None) -> RunOptions:
    """
    Normalize caller-supplied options into a RunOptions instance.

    Example
    -------
    >>> normalize_options({"temperature": 0.2})
    RunOptions(system_prompt=None, temperature=0.2, max_tokens=None, function_call_mode='auto', forced_function=None)
    """
    if options is None:
        return RunOptions()
    if isinstance(options, RunOptions):
        return options
    if not isinstance(options, Mapping):
        raise ConfigurationError(f"options must be a RunOptions or a mapping, got {type(options).__name__}")

    unknown = sorted(set(options) - _RUN_OPTION_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")
    return RunOptions(**options)


def merge_chat_options(
    defaults: ConductorConfig,
    run: RunOptions,
    tools: Sequence[dict[str, Any]] | None = None,
) -> ChatOptions:
    """
    Build backend options: per-call values win over instance defaults.
    """
    return ChatOptions(
        temperature=run.temperature if run.temperature is not None else defaults.temperature,
        max_tokens=run.max_tokens if run.max_tokens is not None else defaults.max_tokens,
        tools=list(tools) if tools else None,
        function_call_mode=run.function_call_mode,
        forced_function=run.forced_function,
    )


def _check_mode(mode: str, forced_function: Optional[str]) -> None:
    if mode not in FUNCTION_CALL_MODES:
        raise ConfigurationError(
            f"function_call_mode must be one of {FUNCTION_CALL_MODES}, got {mode!r}"
        )
    if mode == "force" and not forced_function:
        raise ConfigurationError("function_call_mode 'force' requires forced_function")
