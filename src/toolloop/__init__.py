"""toolloop - drive a chat model through MCP tool calls."""

from .errors import ToolLoopError
from .loop import ConversationLoop
from .types import ConversationState, Message, ToolCall, ToolDescriptor, TurnResult

__version__ = "0.1.0"

__all__ = [
    "ConversationLoop",
    "ConversationState",
    "Message",
    "ToolCall",
    "ToolDescriptor",
    "ToolLoopError",
    "TurnResult",
]
