"""Append-only conversation history."""

from __future__ import annotations

from typing import Any, Iterator, Optional, Sequence

from llm_conductor.errors import ConfigurationError
from llm_conductor.types import Message, Role, ToolCall

__all__ = ["ConversationHistory", "PersistentSystemConversationHistory"]


class ConversationHistory:
    """
    Ordered, append-only sequence of messages owned by the caller.

    When ``max_messages`` is set and exceeded, the oldest non-system messages
    are evicted. System messages are never evicted.
    """

    def __init__(self, max_messages: int = 0) -> None:
        if max_messages < 0:
            raise ConfigurationError("max_messages cannot be negative")
        self.max_messages = max_messages
        self._messages: list[Message] = []

    def add_message(self, message: Message) -> None:
        self._messages.append(message)
        self._apply_message_limit()

    def add_user_message(self, content: str, **metadata: Any) -> Message:
        message = Message.user(content, **metadata)
        self.add_message(message)
        return message

    def add_assistant_message(
        self,
        content: Optional[str],
        tool_calls: Optional[Sequence[ToolCall]] = None,
        **metadata: Any,
    ) -> Message:
        message = Message.assistant(content, tool_calls=list(tool_calls or []), **metadata)
        self.add_message(message)
        return message

    def add_system_message(self, content: str, **metadata: Any) -> Message:
        message = Message.system(content, **metadata)
        self.add_message(message)
        return message

    def add_tool_message(self, content: str, tool_call_id: str, name: str, **metadata: Any) -> Message:
        message = Message.tool(content, tool_call_id=tool_call_id, name=name, **metadata)
        self.add_message(message)
        return message

    def get_messages(self) -> list[Message]:
        """Return a copy of all messages in chronological order."""
        return list(self._messages)

    def get_messages_by_role(self, role: Role | str) -> list[Message]:
        role = Role(role)
        return [m for m in self._messages if m.role is role]

    def get_recent_messages(self, count: int) -> list[Message]:
        if count <= 0:
            return []
        return self._messages[-count:]

    def clear(self) -> None:
        self._messages = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def _apply_message_limit(self) -> None:
        """
        Evict the oldest non-system messages until the cap is met.

        An assistant message that requested tools is evicted together with
        its tool results, and the newest group is never evicted, so the cap
        can be exceeded while a tool turn is in progress. Tool results left
        without their requesting assistant message are dropped.
        """
        if not self.max_messages or len(self._messages) <= self.max_messages:
            return
        system_count = sum(1 for m in self._messages if m.role is Role.SYSTEM)
        floor = max(self.max_messages, system_count)
        groups = _eviction_groups(self._messages)

        total = len(self._messages)
        evicted: set[int] = set()
        for group in groups[:-1]:
            if total <= floor:
                break
            if self._messages[group[0]].role is Role.SYSTEM:
                continue
            evicted.update(group)
            total -= len(group)

        # orphaned tool results at the head
        for group in groups:
            first = self._messages[group[0]]
            if group[0] in evicted or first.role is Role.SYSTEM:
                continue
            if first.role is not Role.TOOL:
                break
            evicted.update(group)

        self._messages = [m for i, m in enumerate(self._messages) if i not in evicted]


def _eviction_groups(messages: Sequence[Message]) -> list[list[int]]:
    """Indices grouped so a tool-calling assistant message owns its tool results."""
    groups: list[list[int]] = []
    owner: dict[str, int] = {}
    for index, message in enumerate(messages):
        if message.role is Role.TOOL and message.tool_call_id in owner:
            groups[owner[message.tool_call_id]].append(index)
            continue
        groups.append([index])
        for call in message.tool_calls or ():
            owner[call.id] = len(groups) - 1
    return groups


class PersistentSystemConversationHistory(ConversationHistory):
    """History that always starts with a single managed system prompt."""

    def __init__(self, system_prompt: str, max_messages: int = 0) -> None:
        super().__init__(max_messages=max_messages)
        self._system_prompt = system_prompt
        self.add_system_message(system_prompt)

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def clear(self) -> None:
        super().clear()
        self.add_system_message(self._system_prompt)

    def update_system_prompt(self, system_prompt: str) -> None:
        """Replace the system message while keeping the rest of the history."""
        self._system_prompt = system_prompt
        others = [m for m in self._messages if m.role is not Role.SYSTEM]
        self._messages = [Message.system(system_prompt), *others]
