"""Tests for bounded-concurrency tool dispatch."""

import asyncio
import json
import time

import pytest

from llm_conductor.config import ConductorConfig
from llm_conductor.dispatcher import ToolDispatcher
from llm_conductor.errors import ConfigurationError
from llm_conductor.types import ToolCall


def _calls(*names):
    return [ToolCall(id=f"call_{i}", name=name, arguments="{}") for i, name in enumerate(names, 1)]


class TestToolDispatcher:
    """Batching, pacing, ordering and failure isolation."""

    @pytest.mark.asyncio
    async def test_output_order_matches_call_order(self):
        """Call k resolves before call k-1; outcomes still follow call order."""
        finished = []

        async def invoke(name, arguments):
            delay = {"slow": 0.08, "medium": 0.04, "fast": 0.0}[name]
            await asyncio.sleep(delay)
            finished.append(name)
            return name

        dispatcher = ToolDispatcher(max_concurrent=3, inter_item_delay_ms=0)
        seen = []
        outcomes = await dispatcher.run(
            _calls("slow", "medium", "fast"), invoke, on_outcome=seen.append
        )

        assert finished == ["fast", "medium", "slow"]
        assert [o.result for o in outcomes] == ["slow", "medium", "fast"]
        assert [o.tool_call_id for o in seen] == ["call_1", "call_2", "call_3"]

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self):
        """Test one failing tool does not affect its siblings."""
        async def invoke(name, arguments):
            if name == "bad":
                raise RuntimeError("exploded")
            return "fine"

        dispatcher = ToolDispatcher(max_concurrent=3, inter_item_delay_ms=0)
        outcomes = await dispatcher.run(_calls("good", "bad", "good"), invoke)

        assert [o.is_error for o in outcomes] == [False, True, False]
        assert json.loads(outcomes[1].content) == {"error": "exploded"}
        assert outcomes[2].result == "fine"

    @pytest.mark.asyncio
    async def test_malformed_arguments_become_error_outcome(self):
        """Test unparsable arguments produce an error outcome."""
        async def invoke(name, arguments):
            return "unreachable"

        call = ToolCall(id="c1", name="f", arguments="{oops")
        [outcome] = await ToolDispatcher().run([call], invoke)
        assert outcome.is_error
        assert "Invalid JSON" in outcome.result

    @pytest.mark.asyncio
    async def test_batches_respect_cap_and_delays(self):
        """Three calls with a cap of 2: call 3 starts only after the first batch."""
        started = {}
        active = 0
        peak = 0
        origin = time.monotonic()

        async def invoke(name, arguments):
            nonlocal active, peak
            started[name] = time.monotonic() - origin
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.03)
            active -= 1
            return name

        dispatcher = ToolDispatcher(max_concurrent=2, inter_item_delay_ms=20, inter_batch_delay_ms=50)
        outcomes = await dispatcher.run(_calls("one", "two", "three"), invoke)
        elapsed = time.monotonic() - origin

        assert [o.result for o in outcomes] == ["one", "two", "three"]
        assert peak == 2
        assert started["two"] >= 0.02 - 0.005
        # batch one ends at stagger + work, then the inter-batch delay
        assert started["three"] >= 0.02 + 0.03 + 0.05 - 0.005
        assert elapsed >= 0.05 + 0.02

    @pytest.mark.asyncio
    async def test_sequential_when_parallel_disabled(self):
        """Test calls run one at a time when parallelism is off."""
        active = 0
        peak = 0

        async def invoke(name, arguments):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return name

        dispatcher = ToolDispatcher(max_concurrent=3, inter_item_delay_ms=0, parallel=False)
        seen = []
        await dispatcher.run(_calls("a", "b", "c"), invoke, on_outcome=seen.append)
        assert peak == 1
        assert [o.name for o in seen] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_outcome(self):
        """Test a tool exceeding the timeout produces an error outcome."""
        async def invoke(name, arguments):
            if name == "hang":
                await asyncio.sleep(5)
            return "ok"

        dispatcher = ToolDispatcher(inter_item_delay_ms=0, timeout=0.05)
        outcomes = await dispatcher.run(_calls("hang", "quick"), invoke)
        assert outcomes[0].is_error
        assert "timed out" in outcomes[0].result
        assert outcomes[1].result == "ok"

    @pytest.mark.asyncio
    async def test_tool_raised_timeout_keeps_its_message(self):
        """A TimeoutError raised by the tool itself is reported as-is when no timeout is set."""
        async def invoke(name, arguments):
            raise TimeoutError("upstream API timed out")

        [outcome] = await ToolDispatcher(timeout=None).run(_calls("slow_api"), invoke)

        assert outcome.is_error
        assert outcome.result == "upstream API timed out"
        assert "None" not in outcome.result

    @pytest.mark.asyncio
    async def test_accepts_tool_invoker_objects_and_sync_results(self):
        """Test invoker objects and synchronous results are supported."""
        class Invoker:
            def invoke(self, name, arguments):
                return f"sync:{name}"

        [outcome] = await ToolDispatcher().run(_calls("x"), Invoker())
        assert outcome.result == "sync:x"

    @pytest.mark.asyncio
    async def test_empty_input(self):
        """Test no calls produce no outcomes."""
        assert await ToolDispatcher().run([], lambda name, args: None) == []

    def test_from_config(self):
        """Test the dispatcher is configured from ConductorConfig."""
        config = ConductorConfig(
            max_concurrent_tool_calls=5,
            tool_call_delay_ms=10,
            enable_parallel_tool_calls=False,
            tool_call_timeout=2.5,
        )
        dispatcher = ToolDispatcher.from_config(config)
        assert dispatcher.max_concurrent == 5
        assert dispatcher.inter_item_delay_ms == 10
        assert dispatcher.inter_batch_delay_ms == 10
        assert dispatcher.parallel is False
        assert dispatcher.timeout == 2.5

    def test_invalid_construction(self):
        """Test invalid limits raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ToolDispatcher(max_concurrent=0)
        with pytest.raises(ConfigurationError):
            ToolDispatcher(inter_item_delay_ms=-1)
