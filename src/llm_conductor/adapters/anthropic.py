"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Final, Sequence

from anthropic.types import Message as AnthropicMessage

from llm_conductor.context import Context
from llm_conductor.params import ChatOptions
from llm_conductor.types import Message, ModelResponse, Role, StreamChunk, ToolCall, Usage

# Anthropic requires max_tokens
DEFAULT_MAX_TOKENS: Final = 4096


class AnthropicRequestAdapter:
    """Adapter for converting between the internal model and Anthropic messages."""

    def build_messages(self, messages: Sequence[Message]) -> tuple[str, list[dict[str, Any]]]:
        """Return ``(system_prompt, messages)``; system content is lifted out."""
        system_parts: list[str] = []
        anthropic_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role is Role.SYSTEM:
                if msg.content:
                    system_parts.append(msg.content)
                continue

            if msg.role is Role.TOOL:
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.content or "",
                }
                # Consecutive tool results fold into a single user turn
                previous = anthropic_messages[-1] if anthropic_messages else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    anthropic_messages.append({"role": "user", "content": [block]})
                continue

            if msg.role is Role.ASSISTANT and msg.tool_calls:
                content_list: list[dict[str, Any]] = []
                if msg.content:
                    content_list.append({"type": "text", "text": msg.content})
                for tc in msg.tool_calls:
                    content_list.append(
                        {
                            "type": "tool_use",
                            "id": tc.id,
                            "name": tc.name,
                            "input": _safe_input(tc),
                        }
                    )
                anthropic_messages.append({"role": "assistant", "content": content_list})
                continue

            anthropic_messages.append({"role": msg.role.value, "content": msg.content or ""})

        return "\n\n".join(system_parts), anthropic_messages

    def to_provider(self, context: Context, options: ChatOptions) -> dict[str, Any]:
        """Convert a context and chat options to Anthropic request arguments."""
        system_prompt, messages = self.build_messages(context.all_messages())
        request: dict[str, Any] = {
            "messages": messages,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system_prompt:
            request["system"] = system_prompt
        if options.temperature is not None:
            request["temperature"] = options.temperature

        if options.tools:
            anthropic_tools = []
            for tool in options.tools:
                if tool.get("type") == "function":
                    func = tool["function"]
                    anthropic_tools.append(
                        {
                            "name": func["name"],
                            "description": func.get("description", ""),
                            "input_schema": func.get("parameters", {"type": "object"}),
                        }
                    )
                else:
                    anthropic_tools.append(tool)
            request["tools"] = anthropic_tools
            if options.function_call_mode == "disabled":
                request["tool_choice"] = {"type": "none"}
            elif options.function_call_mode == "force":
                request["tool_choice"] = {"type": "tool", "name": options.forced_function}

        return request

    def from_provider(self, raw: AnthropicMessage) -> ModelResponse:
        """Convert Anthropic response to unified ModelResponse."""
        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []

        for block in raw.content or []:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                arguments = dict(block.input) if hasattr(block.input, "items") else {}
                tool_calls.append(ToolCall.from_arguments(block.id, block.name, arguments))

        usage = None
        if getattr(raw, "usage", None) is not None:
            usage = Usage.of(raw.usage.input_tokens or 0, raw.usage.output_tokens or 0)

        return ModelResponse(
            content="".join(text_parts) if text_parts else None,
            tool_calls=tool_calls or None,
            usage=usage,
            raw=raw,
        )

    def stream_chunk(self, raw_event: Any) -> StreamChunk:
        """Extract text from a raw streaming event."""
        content = ""
        if getattr(raw_event, "type", None) == "content_block_delta":
            delta = getattr(raw_event, "delta", None)
            if getattr(delta, "type", None) == "text_delta":
                content = delta.text
        return StreamChunk(content=content, raw=raw_event)


def _safe_input(call: ToolCall) -> dict[str, Any]:
    try:
        return call.parsed_arguments()
    except ValueError:
        return {"_raw_arguments": call.arguments}
