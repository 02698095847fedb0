"""
Provider-neutral dataclasses for client-side tool use.

They are intentionally minimal: everything provider-specific lives in adapters.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from llm_conductor.types.message import Message

__all__ = ["ToolCall", "ToolInvocationOutcome"]


@dataclass(slots=True)
class ToolCall:
    """A request emitted by the backend to call a local tool."""
    id: str
    name: str
    arguments: str = ""         # serialized JSON object

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode the argument string. Raises ValueError on malformed JSON."""
        if not self.arguments or not self.arguments.strip():
            return {}
        try:
            value = json.loads(self.arguments)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON arguments for tool '{self.name}': {exc}") from exc
        if not isinstance(value, dict):
            raise ValueError(f"Arguments for tool '{self.name}' must be a JSON object")
        return value

    @classmethod
    def from_arguments(cls, id: str, name: str, arguments: dict[str, Any]) -> "ToolCall":
        return cls(id=id, name=name, arguments=json.dumps(arguments))


@dataclass(slots=True)
class ToolInvocationOutcome:
    """Result of one tool invocation, success or failure."""
    tool_call_id: str           # must match the request id
    name: str
    result: Any
    is_error: bool = False

    @property
    def content(self) -> str:
        if self.is_error:
            return json.dumps({"error": str(self.result)})
        if isinstance(self.result, str):
            return self.result
        return json.dumps(self.result, default=str)

    def to_message(self) -> "Message":
        from llm_conductor.types.message import Message

        return Message.tool(self.content, tool_call_id=self.tool_call_id, name=self.name)
