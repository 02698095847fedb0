from __future__ import annotations

import argparse
import asyncio
import logging

from llm_conductor import (
    BackendRegistry,
    ConductorConfig,
    ExecutionLoop,
    Provider,
    SystemInstructions,
    ToolRegistry,
    create_backend,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

tools = ToolRegistry()


@tools.tool(
    description="Get the current weather in a given location",
    parameters={
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "City and state, e.g. San Francisco, CA",
            },
        },
        "required": ["location"],
    },
)
async def get_weather(location: str) -> str:
    """Stub implementation of get_weather."""
    # imagine we call a real weather API here
    await asyncio.sleep(0.1)
    return f"15 °C, mostly cloudy in {location}"


async def tool_turn(provider: Provider, model: str) -> None:
    """
    Run one tool-bearing turn with the given provider + model.

    The loop sends the prompt, runs whatever tools the model asks for and
    makes one more call to synthesize the answer.
    """
    registry = BackendRegistry({provider.value: create_backend(provider)})
    registry.set_current(provider.value, model)

    loop = ExecutionLoop(
        registry,
        tools=tools,
        config=ConductorConfig.from_env(),
        system=SystemInstructions(system_prompt="You are a concise weather assistant."),
    )
    try:
        answer = await loop.run("What's the weather in San Francisco and in Boston?")
        logger.info("%s says: %s", provider.value.capitalize(), answer)
        logger.info("Usage: %s", loop.ledger.get_limit_info())
    finally:
        await loop.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.ANTHROPIC.value,
    )
    parser.add_argument(
        "--model",
        default="claude-3-5-haiku-20241022",  # "gpt-4.1-nano-2025-04-14"
    )
    args = parser.parse_args()

    asyncio.run(tool_turn(Provider(args.provider), args.model))
