"""Conversation data model shared by the loop and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Literal, Protocol

Role = Literal["system", "user", "assistant", "tool"]


class FinishReason(str, Enum):
    """Why the completion service stopped generating."""

    TOOL_CALLS = "tool_calls"
    STOP = "stop"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: str | None) -> FinishReason:
        if raw == cls.TOOL_CALLS.value:
            return cls.TOOL_CALLS
        if raw == cls.STOP.value:
            return cls.STOP
        return cls.OTHER


class LoopStatus(str, Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ToolCall:
    """Model-issued request to invoke one named tool."""

    id: str
    name: str
    arguments: str

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class Message:
    """One entry of the conversation history."""

    role: Role
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: tuple[ToolCall, ...] = ()) -> Message:
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> Message:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    def to_openai(self) -> dict[str, Any]:
        """Render the Chat Completions wire form of this message."""
        if self.role == "tool":
            return {"role": "tool", "content": self.content, "tool_call_id": self.tool_call_id}
        if self.role == "assistant" and self.tool_calls:
            return {
                "role": "assistant",
                "content": self.content or None,
                "tool_calls": [call.to_openai() for call in self.tool_calls],
            }
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata as announced by the tool-execution service."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)

    @property
    def properties(self) -> dict[str, Any]:
        properties = self.input_schema.get("properties")
        return properties if isinstance(properties, dict) else {}

    @property
    def required(self) -> list[str]:
        required = self.input_schema.get("required")
        return list(required) if isinstance(required, (list, tuple)) else []


@dataclass(frozen=True)
class TurnResult:
    """One candidate turn returned by the completion service."""

    finish_reason: FinishReason
    message: Message
    raw_finish_reason: str | None = None


@dataclass(frozen=True)
class ConversationState:
    """Append-only conversation history plus loop bookkeeping.

    Instances are never mutated; every transition returns a new state.
    """

    messages: tuple[Message, ...]
    status: LoopStatus = LoopStatus.RUNNING
    turns: int = 0
    final_content: str | None = None
    anomaly: Exception | None = None
    tool_results: tuple[str, ...] = ()

    @classmethod
    def seed(cls, prompt: str, *, system_prompt: str | None = None) -> ConversationState:
        messages: tuple[Message, ...] = (Message.user(prompt),)
        if system_prompt:
            messages = (Message.system(system_prompt), *messages)
        return cls(messages=messages)

    @property
    def running(self) -> bool:
        return self.status is LoopStatus.RUNNING

    @property
    def resolved(self) -> bool:
        """True when the conversation ended with a clean stop."""
        return self.status is LoopStatus.TERMINATED and self.anomaly is None and self.final_content is not None

    def append(self, *messages: Message) -> ConversationState:
        return replace(self, messages=(*self.messages, *messages))

    def openai_messages(self) -> list[dict[str, Any]]:
        return [message.to_openai() for message in self.messages]


class ToolService(Protocol):
    """Operations consumed from the tool-execution service."""

    async def list_tools(self) -> list[ToolDescriptor]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any: ...
