"""
Execution loop: one user turn through to the final assistant message.

A turn makes at most two backend calls. When the first response asks for
tools, the tools run through the dispatcher and a second call, with tool
calling disabled, synthesizes the final answer.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any, AsyncIterator, Mapping, Optional

from llm_conductor.analytics import AnalyticsRecorder
from llm_conductor.backends import Backend
from llm_conductor.config import ConductorConfig
from llm_conductor.context import Context, ContextAssembler, SystemInstructions
from llm_conductor.dispatcher import ToolDispatcher
from llm_conductor.errors import BackendUnavailable, ConductorError, ConfigurationError
from llm_conductor.history import ConversationHistory
from llm_conductor.limits import UsageLedger
from llm_conductor.params import ChatOptions, RunOptions, merge_chat_options, normalize_options
from llm_conductor.registry import BackendRegistry
from llm_conductor.tokens import TokenEstimator
from llm_conductor.tools import ToolRegistry
from llm_conductor.types import ModelResponse, ToolInvocationOutcome, Usage

__all__ = ["ExecutionLoop", "LoopState"]


class LoopState(StrEnum):
    IDLE = "idle"
    AWAITING_FIRST_RESPONSE = "awaiting_first_response"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_FINAL_RESPONSE = "awaiting_final_response"
    DONE = "done"


class ExecutionLoop:
    """
    Drives a conversation turn against the current backend.

    Every collaborator can be injected; missing ones are built from
    ``config``. A loop owns its history, ledger and analytics, so concurrent
    turns on one loop must be serialized by the caller.
    """

    def __init__(
        self,
        backends: BackendRegistry,
        *,
        tools: Optional[ToolRegistry] = None,
        config: Optional[ConductorConfig] = None,
        ledger: Optional[UsageLedger] = None,
        analytics: Optional[AnalyticsRecorder] = None,
        estimator: Optional[TokenEstimator] = None,
        assembler: Optional[ContextAssembler] = None,
        dispatcher: Optional[ToolDispatcher] = None,
        system: Optional[SystemInstructions] = None,
        history: Optional[ConversationHistory] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.config = config or ConductorConfig()
        self.backends = backends
        self._tools = tools if tools is not None else ToolRegistry(logger=self.logger)
        self._ledger = ledger or UsageLedger(
            max_tokens=self.config.max_token_limit,
            max_requests=self.config.max_request_limit,
        )
        self._analytics = analytics or AnalyticsRecorder()
        self._estimator = estimator or TokenEstimator(logger=self.logger)
        self._assembler = assembler or ContextAssembler()
        self._dispatcher = dispatcher or ToolDispatcher.from_config(self.config, logger=self.logger)
        self._system = system or SystemInstructions()
        self._history = history if history is not None else ConversationHistory(
            max_messages=self.config.max_history_messages
        )
        self._state = LoopState.IDLE

    # --- read access ---------------------------------------------------------
    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def ledger(self) -> UsageLedger:
        return self._ledger

    @property
    def analytics(self) -> AnalyticsRecorder:
        return self._analytics

    @property
    def system(self) -> SystemInstructions:
        return self._system

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[ExecutionLoop] {message}")

    # --- turns ---------------------------------------------------------------
    async def run(self, prompt: str, options: RunOptions | Mapping[str, Any] | None = None) -> str:
        """
        Run one turn and return the final assistant content.

        Raises:
            ConfigurationError: no backend/model selected or bad options.
                Raised before history is touched.
            BudgetExceeded: an admission check or a usage commit failed.
            BackendUnavailable: a backend call failed.
        """
        self._state = LoopState.IDLE
        run_options = normalize_options(options)
        backend_name, backend, model = self.backends.current

        self._history.add_user_message(prompt)
        self._state = LoopState.AWAITING_FIRST_RESPONSE

        chat_options = merge_chat_options(self.config, run_options, self._tools.schemas())
        context = self._prepare(run_options)
        self._admit(context, model)
        response = await self._call(backend, backend_name, model, context, chat_options)

        if not response.has_tool_calls:
            content = response.content or ""
            self._history.add_assistant_message(content)
            self._commit(response.usage, backend_name, model)
            self._state = LoopState.DONE
            return content

        # Tool calls are recorded before any tool runs
        tool_calls = list(response.tool_calls or [])
        self._history.add_assistant_message(response.content, tool_calls=tool_calls)
        self._state = LoopState.EXECUTING_TOOLS
        self._log(f"Executing {len(tool_calls)} tool call(s)", logging.DEBUG)
        await self._dispatcher.run(tool_calls, self._tools, on_outcome=self._append_outcome)

        self._state = LoopState.AWAITING_FINAL_RESPONSE
        context = self._prepare(run_options)
        self._admit(context, model)
        final = await self._call(
            backend,
            backend_name,
            model,
            context,
            chat_options.copy(function_call_mode="disabled"),
        )
        if final.has_tool_calls:
            self._log("Ignoring tool calls returned by the synthesis call", logging.WARNING)

        content = final.content or ""
        self._history.add_assistant_message(content)
        self._commit(final.usage, backend_name, model)
        self._state = LoopState.DONE
        return content

    async def run_stream(
        self, prompt: str, options: RunOptions | Mapping[str, Any] | None = None
    ) -> AsyncIterator[str]:
        """Stream one turn's content deltas. Tools are never run while streaming."""
        self._state = LoopState.IDLE
        run_options = normalize_options(options)
        backend_name, backend, model = self.backends.current
        if not backend.supports_streaming:
            raise ConfigurationError(f"Backend {backend_name} does not support streaming")

        self._history.add_user_message(prompt)
        self._state = LoopState.AWAITING_FIRST_RESPONSE

        chat_options = merge_chat_options(self.config, run_options)
        context = self._prepare(run_options)
        self._admit(context, model)

        parts: list[str] = []
        usage: Optional[Usage] = None
        try:
            async for chunk in backend.chat_stream(model, context, chat_options):
                if chunk.usage is not None:
                    usage = chunk.usage
                if chunk.content:
                    parts.append(chunk.content)
                    yield chunk.content
        except ConductorError:
            raise
        except Exception as exc:
            raise BackendUnavailable(f"Backend {backend_name} failed: {exc}", exc) from exc

        self._history.add_assistant_message("".join(parts))
        self._commit(usage, backend_name, model)
        self._state = LoopState.DONE

    # --- maintenance ---------------------------------------------------------
    def clear_history(self) -> None:
        self._history.clear()

    def reset_usage(self) -> None:
        self._ledger.reset()
        self._analytics.reset()

    async def aclose(self) -> None:
        await self.backends.aclose()

    # --- internals -----------------------------------------------------------
    def _prepare(self, run_options: RunOptions) -> Context:
        return self._assembler.prepare(
            self._history,
            system_prompt=self._system.system_prompt,
            system_messages=self._system.system_messages,
            options=run_options,
        )

    def _admit(self, context: Context, model: str) -> None:
        """Reject the request before it reaches the backend."""
        self._ledger.check_request_limit()
        if not self._ledger.is_tokens_unlimited:
            estimate = self._estimator.count_messages(context.all_messages(), model)
            self._log(f"Estimated request size: {estimate} tokens", logging.DEBUG)
            self._ledger.check_estimated_token_limit(estimate)

    async def _call(
        self,
        backend: Backend,
        backend_name: str,
        model: str,
        context: Context,
        options: ChatOptions,
    ) -> ModelResponse:
        try:
            return await backend.chat(model, context, options)
        except ConductorError:
            raise
        except Exception as exc:
            raise BackendUnavailable(f"Backend {backend_name} failed: {exc}", exc) from exc

    def _commit(self, usage: Optional[Usage], backend_name: str, model: str) -> None:
        if usage is None:
            self._log("Backend reported no usage; nothing recorded", logging.DEBUG)
            return
        self._ledger.record_request(usage.total_tokens)
        self._analytics.record_request(usage.total_tokens, backend_name, model)

    def _append_outcome(self, outcome: ToolInvocationOutcome) -> None:
        self._history.add_message(outcome.to_message())
