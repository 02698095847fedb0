"""Pure transformation adapters for different backends."""

from .openai import OpenAIRequestAdapter
from .anthropic import AnthropicRequestAdapter

__all__ = [
    "OpenAIRequestAdapter",
    "AnthropicRequestAdapter",
]
