"""Builds the outgoing request payload from history and system instructions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from llm_conductor.history import ConversationHistory
from llm_conductor.params import RunOptions
from llm_conductor.types import Message

__all__ = ["Context", "ContextAssembler", "SystemInstructions"]


@dataclass
class Context:
    """Ordered messages plus whichever system representation was selected."""

    messages: list[Message] = field(default_factory=list)
    system_prompt: Optional[str] = None
    system_messages: Optional[list[Message]] = None

    def system_content(self) -> list[Message]:
        if self.system_prompt:
            return [Message.system(self.system_prompt)]
        return list(self.system_messages or [])

    def all_messages(self) -> list[Message]:
        """System content first, then the conversation."""
        return [*self.system_content(), *self.messages]


class SystemInstructions:
    """Configured system prompt or list of system messages (mutually exclusive)."""

    def __init__(
        self,
        system_prompt: Optional[str] = None,
        system_messages: Optional[Sequence[Message]] = None,
    ) -> None:
        self._system_prompt = system_prompt
        self._system_messages: Optional[list[Message]] = None
        if system_messages:
            self.set_system_messages(system_messages)

    @property
    def system_prompt(self) -> Optional[str]:
        return self._system_prompt

    @property
    def system_messages(self) -> Optional[list[Message]]:
        return list(self._system_messages) if self._system_messages is not None else None

    @property
    def has_system_messages(self) -> bool:
        return bool(self._system_prompt or self._system_messages)

    def set_system_prompt(self, prompt: str) -> None:
        self._system_prompt = prompt
        self._system_messages = None

    def set_system_messages(self, messages: Sequence[Message]) -> None:
        self._system_prompt = None
        self._system_messages = [m if isinstance(m, Message) else Message.system(str(m)) for m in messages]

    def add_system_message(self, content: str) -> None:
        """Append a system message, promoting an existing prompt into the list."""
        messages = list(self._system_messages or [])
        if self._system_prompt:
            if not any(m.content == self._system_prompt for m in messages):
                messages.insert(0, Message.system(self._system_prompt))
            self._system_prompt = None
        messages.append(Message.system(content))
        self._system_messages = messages

    def clear(self) -> None:
        self._system_prompt = None
        self._system_messages = None


class ContextAssembler:
    """Pure function object; never mutates the history it reads."""

    def prepare(
        self,
        history: ConversationHistory,
        system_prompt: Optional[str] = None,
        system_messages: Optional[Sequence[Message]] = None,
        options: Optional[RunOptions] = None,
    ) -> Context:
        context = Context(messages=history.get_messages())

        # per-call prompt > configured list > configured default prompt
        if options is not None and options.system_prompt:
            context.system_prompt = options.system_prompt
        elif system_messages:
            context.system_messages = list(system_messages)
        elif system_prompt:
            context.system_prompt = system_prompt

        return context
