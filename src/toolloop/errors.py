"""Application-level exception types for toolloop."""

from __future__ import annotations


class ToolLoopError(Exception):
    """Base exception for toolloop."""


class ConfigurationError(ToolLoopError):
    """Raised when settings fail validation at startup."""


class MCPConnectionError(ToolLoopError):
    """Raised when the tool-execution service handshake fails."""


class CompletionServiceError(ToolLoopError):
    """Raised on transport or protocol failure talking to the completion service."""


class MissingToolName(ToolLoopError):
    """Raised when a discovered tool descriptor carries no name."""


class TurnLimitExceeded(ToolLoopError):
    """Raised when the conversation runs past the configured turn cap."""

    def __init__(self, max_turns: int) -> None:
        super().__init__(f"conversation exceeded {max_turns} turns without a final answer")
        self.max_turns = max_turns


class ToolCallError(ToolLoopError):
    """Failure intrinsic to a single tool call; recovered into tool output."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolExecutionFailed(ToolCallError):
    """The tool-execution service reported an error or the transport failed."""


class ToolContentTypeMismatch(ToolCallError):
    """The first content element of a tool response is not text."""

    def __init__(self, tool_name: str, content_type: str | None) -> None:
        super().__init__(tool_name, f"tool '{tool_name}' returned non-text content: {content_type or 'none'}")
        self.content_type = content_type


class UnknownToolError(ToolCallError):
    """The model asked for a tool the catalog does not know."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"unknown tool '{tool_name}'")


class ArgumentDecodeError(ToolCallError):
    """A tool call's argument payload is not a serialized JSON object."""

    def __init__(self, tool_name: str, payload: str, reason: str) -> None:
        super().__init__(tool_name, f"cannot decode arguments for '{tool_name}': {reason}")
        self.payload = payload
        self.reason = reason


class ArgumentValidationError(ToolCallError):
    """Decoded arguments violate the tool's declared input schema."""

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(tool_name, f"invalid arguments for '{tool_name}': {reason}")
        self.reason = reason


class ConversationAnomaly(ToolLoopError):
    """The model produced neither a usable tool request nor a clean stop."""


class EmptyToolCallAnomaly(ConversationAnomaly):
    """finish_reason was tool_calls but no tool call records were attached."""

    def __init__(self) -> None:
        super().__init__("model requested tool calls but sent none")


class AnomalousFinish(ConversationAnomaly):
    """finish_reason was neither tool_calls nor stop."""

    def __init__(self, finish_reason: str | None) -> None:
        super().__init__(f"unexpected finish reason: {finish_reason!r}")
        self.finish_reason = finish_reason
