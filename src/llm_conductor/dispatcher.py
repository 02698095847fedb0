"""Bounded-concurrency execution of tool calls."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from llm_conductor.config import ConductorConfig
from llm_conductor.errors import ConfigurationError, ToolInvocationFailed
from llm_conductor.tools import ToolInvoker
from llm_conductor.types import ToolCall, ToolInvocationOutcome

__all__ = ["ToolDispatcher"]

InvokeFn = Callable[[str, dict[str, Any]], Awaitable[Any]]
OutcomeCallback = Callable[[ToolInvocationOutcome], None]


class ToolDispatcher:
    """
    Runs tool calls in consecutive batches of at most ``max_concurrent``.

    Within a batch the i-th call starts ``i * inter_item_delay_ms`` after the
    first one; the next batch starts only after the whole batch finished and
    ``inter_batch_delay_ms`` elapsed. Output order always equals call order.
    A single call, or ``parallel=False``, runs strictly sequentially with no
    delays. Every invocation is isolated: a failure becomes an error outcome.
    """

    def __init__(
        self,
        max_concurrent: int = 3,
        inter_item_delay_ms: float = 100,
        inter_batch_delay_ms: Optional[float] = None,
        *,
        parallel: bool = True,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_concurrent < 1:
            raise ConfigurationError("max_concurrent must be at least 1")
        if inter_item_delay_ms < 0 or (inter_batch_delay_ms is not None and inter_batch_delay_ms < 0):
            raise ConfigurationError("tool call delays cannot be negative")
        if timeout is not None and timeout <= 0:
            raise ConfigurationError("timeout must be positive or None")
        self.max_concurrent = max_concurrent
        self.inter_item_delay_ms = inter_item_delay_ms
        self.inter_batch_delay_ms = (
            inter_item_delay_ms if inter_batch_delay_ms is None else inter_batch_delay_ms
        )
        self.parallel = parallel
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: ConductorConfig, *, logger: Optional[logging.Logger] = None) -> "ToolDispatcher":
        return cls(
            max_concurrent=config.max_concurrent_tool_calls,
            inter_item_delay_ms=config.tool_call_delay_ms,
            parallel=config.enable_parallel_tool_calls,
            timeout=config.tool_call_timeout,
            logger=logger,
        )

    async def run(
        self,
        tool_calls: Sequence[ToolCall],
        invoke: Union[InvokeFn, ToolInvoker],
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> list[ToolInvocationOutcome]:
        calls = list(tool_calls)
        if not calls:
            return []
        invoke_fn: InvokeFn = getattr(invoke, "invoke", invoke)

        if not self.parallel or len(calls) <= 1:
            return await self._run_sequential(calls, invoke_fn, on_outcome)
        return await self._run_batched(calls, invoke_fn, on_outcome)

    async def _run_sequential(
        self,
        calls: list[ToolCall],
        invoke: InvokeFn,
        on_outcome: Optional[OutcomeCallback],
    ) -> list[ToolInvocationOutcome]:
        self.logger.debug("Running %d tool call(s) sequentially", len(calls))
        outcomes: list[ToolInvocationOutcome] = []
        for call in calls:
            outcome = await self._invoke_one(call, invoke)
            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)
        return outcomes

    async def _run_batched(
        self,
        calls: list[ToolCall],
        invoke: InvokeFn,
        on_outcome: Optional[OutcomeCallback],
    ) -> list[ToolInvocationOutcome]:
        self.logger.debug(
            "Running %d tool calls in batches of %d", len(calls), self.max_concurrent
        )
        outcomes: list[ToolInvocationOutcome] = []
        for start in range(0, len(calls), self.max_concurrent):
            batch = calls[start : start + self.max_concurrent]
            self.logger.debug(
                "Batch %d: %d tool call(s)", start // self.max_concurrent + 1, len(batch)
            )
            # gather preserves argument order regardless of completion order
            batch_outcomes = await asyncio.gather(
                *(self._staggered(call, index, invoke) for index, call in enumerate(batch))
            )
            for outcome in batch_outcomes:
                outcomes.append(outcome)
                if on_outcome is not None:
                    on_outcome(outcome)

            if start + self.max_concurrent < len(calls) and self.inter_batch_delay_ms:
                await asyncio.sleep(self.inter_batch_delay_ms / 1000)
        return outcomes

    async def _staggered(self, call: ToolCall, index: int, invoke: InvokeFn) -> ToolInvocationOutcome:
        if index and self.inter_item_delay_ms:
            await asyncio.sleep(index * self.inter_item_delay_ms / 1000)
        return await self._invoke_one(call, invoke)

    async def _invoke_one(self, call: ToolCall, invoke: InvokeFn) -> ToolInvocationOutcome:
        self.logger.debug("Tool call %s (id=%s)", call.name, call.id)
        try:
            arguments = call.parsed_arguments()
            result = invoke(call.name, arguments)
            if inspect.isawaitable(result):
                if self.timeout is not None:
                    result = await asyncio.wait_for(result, self.timeout)
                else:
                    result = await result
        except Exception as exc:
            timed_out = isinstance(exc, TimeoutError) and self.timeout is not None
            failure = ToolInvocationFailed(
                f"Tool '{call.name}' timed out after {self.timeout}s"
                if timed_out
                else str(exc) or exc.__class__.__name__,
                tool_name=call.name,
                tool_call_id=call.id,
                original_exc=exc,
            )
        else:
            return ToolInvocationOutcome(tool_call_id=call.id, name=call.name, result=result)

        self.logger.error("Tool call %s (id=%s) failed: %s", call.name, call.id, failure)
        return ToolInvocationOutcome(
            tool_call_id=call.id, name=call.name, result=str(failure), is_error=True
        )
