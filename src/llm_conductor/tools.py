"""Tool definitions and the invocation capability used by the dispatcher."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, runtime_checkable

__all__ = ["ToolInvoker", "ToolDefinition", "ToolRegistry"]

ToolHandler = Callable[..., Any]
ToolCallHook = Callable[[str, dict[str, Any], Any], None]


@runtime_checkable
class ToolInvoker(Protocol):
    """Anything that can run a named tool with already-parsed arguments."""

    def invoke(self, name: str, arguments: dict[str, Any]) -> Awaitable[Any]:
        ...


@dataclass
class ToolDefinition:
    """A callable tool plus the JSON schema advertised to the backend."""

    name: str
    handler: ToolHandler
    description: str = ""
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def schema(self) -> dict[str, Any]:
        """OpenAI-style function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolRegistry:
    """
    Registry of local tools.

    Arguments are passed through unvalidated; schema validation belongs to
    an upstream layer.
    """

    def __init__(
        self,
        tools: Iterable[ToolDefinition] = (),
        *,
        allowed_functions: Optional[Iterable[str]] = None,
        on_tool_call: Optional[ToolCallHook] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self.allowed_functions = set(allowed_functions) if allowed_functions is not None else None
        self.on_tool_call = on_tool_call
        self.logger = logger or logging.getLogger(__name__)
        for definition in tools:
            self.register(definition)

    def register(self, definition: ToolDefinition) -> None:
        self._tools[definition.name] = definition
        self.logger.debug("Registered tool %s", definition.name)

    def tool(
        self,
        name: Optional[str] = None,
        *,
        description: Optional[str] = None,
        parameters: Optional[dict[str, Any]] = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of `register`."""

        def decorator(fn: ToolHandler) -> ToolHandler:
            definition = ToolDefinition(
                name=name or fn.__name__,
                handler=fn,
                description=description if description is not None else inspect.getdoc(fn) or "",
            )
            if parameters is not None:
                definition.parameters = parameters
            self.register(definition)
            return fn

        return decorator

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        return [d.schema() for d in self._tools.values() if self._is_allowed(d.name)]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
        if not self._is_allowed(name):
            raise PermissionError(f"Tool '{name}' is not allowed.")
        definition = self._tools.get(name)
        if definition is None:
            raise LookupError(f"Tool '{name}' not found.")

        result = definition.handler(**arguments)
        if inspect.isawaitable(result):
            result = await result

        if self.on_tool_call is not None:
            self.on_tool_call(name, arguments, result)
        return result

    def _is_allowed(self, name: str) -> bool:
        return self.allowed_functions is None or name in self.allowed_functions
