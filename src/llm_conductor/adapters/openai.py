"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Sequence

from openai.types.chat import ChatCompletion, ChatCompletionChunk

from llm_conductor.context import Context
from llm_conductor.params import ChatOptions
from llm_conductor.types import Message, ModelResponse, Role, StreamChunk, ToolCall, Usage


class OpenAIRequestAdapter:
    """Adapter for converting between the internal model and OpenAI chat completions."""

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        openai_messages: list[dict[str, Any]] = []
        for msg in messages:
            openai_msg: dict[str, Any] = {"role": msg.role.value, "content": msg.content}

            # Handle tool calls (for assistant messages with function calls)
            if msg.role is Role.ASSISTANT and msg.tool_calls:
                openai_msg["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": tc.arguments or "{}"},
                    }
                    for tc in msg.tool_calls
                ]

            # Handle tool call ID (for tool response messages)
            if msg.role is Role.TOOL:
                openai_msg["tool_call_id"] = msg.tool_call_id
            elif msg.name and msg.role in (Role.USER, Role.SYSTEM):
                openai_msg["name"] = msg.name

            # OpenAI accepts null content only alongside tool_calls
            if openai_msg["content"] is None and "tool_calls" not in openai_msg:
                openai_msg["content"] = ""

            openai_messages.append(openai_msg)
        return openai_messages

    def to_provider(self, context: Context, options: ChatOptions) -> dict[str, Any]:
        """Convert a context and chat options to OpenAI request arguments."""
        request: dict[str, Any] = {"messages": self.build_messages(context.all_messages())}

        if options.temperature is not None:
            request["temperature"] = options.temperature
        if options.max_tokens is not None:
            request["max_tokens"] = options.max_tokens

        if options.tools:
            request["tools"] = options.tools
            if options.function_call_mode == "disabled":
                request["tool_choice"] = "none"
            elif options.function_call_mode == "force":
                request["tool_choice"] = {
                    "type": "function",
                    "function": {"name": options.forced_function},
                }

        return request

    def from_provider(self, raw: ChatCompletion) -> ModelResponse:
        """Convert OpenAI response to unified ModelResponse."""
        content = None
        tool_calls = None

        if raw.choices and raw.choices[0].message:
            message = raw.choices[0].message
            content = message.content

            if message.tool_calls:
                tool_calls = [
                    ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "")
                    for tc in message.tool_calls
                    if getattr(tc, "function", None) is not None
                ] or None

        return ModelResponse(
            content=content,
            tool_calls=tool_calls,
            usage=self._usage(raw),
            raw=raw,
        )

    def stream_chunk(self, raw_chunk: ChatCompletionChunk) -> StreamChunk:
        """Extract content (and final usage) from a streaming chunk."""
        content = ""
        if raw_chunk.choices and raw_chunk.choices[0].delta:
            content = raw_chunk.choices[0].delta.content or ""
        return StreamChunk(content=content, usage=self._usage(raw_chunk), raw=raw_chunk)

    @staticmethod
    def _usage(raw: Any) -> Usage | None:
        usage = getattr(raw, "usage", None)
        if usage is None:
            return None
        return Usage(
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
            total_tokens=usage.total_tokens or 0,
        )
