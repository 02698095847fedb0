"""
LLM Conductor - turn orchestration, tool dispatch and budgets for chat backends.
"""

from .analytics import AnalyticsRecorder
from .backends import Backend, Provider, get_api_key
from .backends.anthropic import AnthropicBackend
from .backends.openai import OpenAIBackend
from .config import ConductorConfig
from .context import Context, ContextAssembler, SystemInstructions
from .dispatcher import ToolDispatcher
from .errors import (
    BackendUnavailable,
    BudgetExceeded,
    ConductorError,
    ConfigurationError,
    ToolInvocationFailed,
)
from .factory import create_backend
from .history import ConversationHistory, PersistentSystemConversationHistory
from .limits import UsageLedger
from .loop import ExecutionLoop, LoopState
from .params import ChatOptions, RunOptions
from .registry import BackendRegistry
from .tokens import TokenEstimator
from .tools import ToolDefinition, ToolRegistry
from .types import Message, ModelResponse, Role, StreamChunk, ToolCall, ToolInvocationOutcome, Usage

__version__ = "0.1.0"

__all__ = [
    "AnalyticsRecorder",
    "AnthropicBackend",
    "Backend",
    "BackendRegistry",
    "BackendUnavailable",
    "BudgetExceeded",
    "ChatOptions",
    "ConductorConfig",
    "ConductorError",
    "ConfigurationError",
    "Context",
    "ContextAssembler",
    "ConversationHistory",
    "ExecutionLoop",
    "LoopState",
    "Message",
    "ModelResponse",
    "OpenAIBackend",
    "PersistentSystemConversationHistory",
    "Provider",
    "Role",
    "RunOptions",
    "StreamChunk",
    "SystemInstructions",
    "TokenEstimator",
    "ToolCall",
    "ToolDefinition",
    "ToolDispatcher",
    "ToolInvocationFailed",
    "ToolInvocationOutcome",
    "ToolRegistry",
    "Usage",
    "UsageLedger",
    "create_backend",
    "get_api_key",
]
