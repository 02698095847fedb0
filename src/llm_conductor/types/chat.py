"""Backend response types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from llm_conductor.types.tool import ToolCall

__all__ = ["Usage", "ModelResponse", "StreamChunk"]


@dataclass(frozen=True, slots=True)
class Usage:
    """Token usage reported by a backend. Authoritative for budgets."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def of(cls, prompt_tokens: int, completion_tokens: int) -> "Usage":
        return cls(prompt_tokens, completion_tokens, prompt_tokens + completion_tokens)


@dataclass
class ModelResponse:
    """Unified response object for all backends."""

    content: Optional[str] = None
    tool_calls: list[ToolCall] | None = None
    usage: Optional[Usage] = None
    raw: Any = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class StreamChunk:
    """Incremental piece of a streamed response."""

    content: str = ""
    usage: Optional[Usage] = None
    raw: Any = None
