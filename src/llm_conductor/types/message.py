"""Provider-neutral message model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional

from llm_conductor.types.tool import ToolCall

__all__ = ["Role", "Message"]


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    """One element of a conversation turn.

    ``content`` may be ``None`` only on an assistant message that carries
    tool calls and no prose. ``tool_call_id`` and ``name`` are set only on
    tool messages, identifying which call this is a result for.
    """

    role: Role
    content: Optional[str]
    timestamp: datetime = field(default_factory=_now)
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.role = Role(self.role)
        if self.tool_calls is not None and self.role is not Role.ASSISTANT:
            raise ValueError("tool_calls are only allowed on assistant messages")
        if self.content is None and not (self.role is Role.ASSISTANT and self.tool_calls):
            raise ValueError(f"{self.role} message requires content")
        if self.role is Role.TOOL:
            if not self.tool_call_id:
                raise ValueError("tool message requires tool_call_id")
        elif self.tool_call_id is not None:
            raise ValueError("tool_call_id is only allowed on tool messages")

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    # --- factories ---------------------------------------------------------
    @classmethod
    def user(cls, content: str, *, name: str | None = None, **metadata: Any) -> "Message":
        return cls(role=Role.USER, content=content, name=name, metadata=metadata)

    @classmethod
    def assistant(
        cls,
        content: str | None,
        *,
        tool_calls: list[ToolCall] | None = None,
        **metadata: Any,
    ) -> "Message":
        return cls(
            role=Role.ASSISTANT,
            content=content,
            tool_calls=list(tool_calls) if tool_calls else None,
            metadata=metadata,
        )

    @classmethod
    def system(cls, content: str, *, name: str | None = None, **metadata: Any) -> "Message":
        return cls(role=Role.SYSTEM, content=content, name=name, metadata=metadata)

    @classmethod
    def tool(cls, content: str, *, tool_call_id: str, name: str, **metadata: Any) -> "Message":
        return cls(
            role=Role.TOOL,
            content=content,
            tool_call_id=tool_call_id,
            name=name,
            metadata=metadata,
        )
