from .chat import ModelResponse, StreamChunk, Usage
from .message import Message, Role
from .tool import ToolCall, ToolInvocationOutcome
from .usage import LimitState, UsageRecord

__all__ = [
    "Message",
    "Role",
    "ToolCall",
    "ToolInvocationOutcome",
    "ModelResponse",
    "StreamChunk",
    "Usage",
    "UsageRecord",
    "LimitState",
]
