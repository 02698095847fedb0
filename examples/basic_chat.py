import asyncio

from openai import AsyncOpenAI

from llm_conductor import BackendRegistry, ExecutionLoop, Provider, create_backend
from llm_conductor.errors import BudgetExceeded


async def chat_example():
    registry = BackendRegistry()
    registry.add_backend("openai", create_backend(Provider.OPENAI, client=AsyncOpenAI(max_retries=3, timeout=10)))
    registry.add_backend("anthropic", create_backend(Provider.ANTHROPIC))
    registry.set_current("openai", "gpt-4.1-nano-2025-04-14")

    loop = ExecutionLoop(registry)
    loop.system.set_system_prompt("You are a helpful assistant.")

    print("OpenAI: ", await loop.run("What's your name?", {"max_tokens": 200}))

    # Same conversation, different backend
    registry.set_current("anthropic", "claude-3-5-haiku-20241022")
    print("Anthropic: ", await loop.run("And what did I just ask you?"))

    print("Streaming: ", end="")
    async for delta in loop.run_stream("Count to five."):
        print(delta, end="", flush=True)
    print()

    loop.ledger.set_max_tokens(loop.ledger.used_tokens + 1)
    try:
        await loop.run("One more question.")
    except BudgetExceeded as exc:
        print("Budget exhausted:", exc)

    print(loop.analytics.get_analytics())
    await loop.aclose()


if __name__ == "__main__":
    asyncio.run(chat_example())
