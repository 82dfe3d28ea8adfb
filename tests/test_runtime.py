from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any

import pytest

from toolloop import runtime
from toolloop.config import get_settings
from toolloop.types import FinishReason, Message, ToolCall, ToolDescriptor, TurnResult


class _FakeMCP:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.connected = False

    @asynccontextmanager
    async def connect(self):
        self.connected = True
        try:
            yield self
        finally:
            self.connected = False

    async def list_tools(self) -> list[ToolDescriptor]:
        return [ToolDescriptor(name="echo", description="echo")]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> object:
        self.calls.append((name, arguments))
        return SimpleNamespace(content=[SimpleNamespace(type="text", text='{"ok": true}')], isError=False)


class _FakeCompletion:
    def __init__(self) -> None:
        self.responses = [
            TurnResult(
                finish_reason=FinishReason.TOOL_CALLS,
                message=Message.assistant(tool_calls=(ToolCall("call-1", "echo", '{"x":1}'),)),
                raw_finish_reason="tool_calls",
            ),
            TurnResult(finish_reason=FinishReason.STOP, message=Message.assistant("done"), raw_finish_reason="stop"),
        ]
        self.closed = False

    async def complete(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> TurnResult:
        return self.responses.pop(0)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings():
    return get_settings(system_prompt="be brief", max_turns=4)


@pytest.mark.asyncio
async def test_run_conversation_wires_collaborators(monkeypatch: pytest.MonkeyPatch, settings) -> None:
    mcp = _FakeMCP()
    completion = _FakeCompletion()
    monkeypatch.setattr(runtime, "build_mcp_client", lambda _settings: mcp)
    monkeypatch.setattr(runtime, "build_completion_client", lambda _settings: completion)

    state = await runtime.run_conversation(settings, "call echo")

    assert state.final_content == "done"
    assert [message.role for message in state.messages] == ["system", "user", "assistant", "tool", "assistant"]
    assert mcp.calls == [("echo", {"x": 1})]
    assert completion.closed
    assert not mcp.connected


@pytest.mark.asyncio
async def test_list_remote_tools(monkeypatch: pytest.MonkeyPatch, settings) -> None:
    monkeypatch.setattr(runtime, "build_mcp_client", lambda _settings: _FakeMCP())

    descriptors = await runtime.list_remote_tools(settings)

    assert [descriptor.name for descriptor in descriptors] == ["echo"]


def test_builders_follow_settings(settings) -> None:
    mcp = runtime.build_mcp_client(settings)
    completion = runtime.build_completion_client(settings)

    assert mcp.server_url == settings.mcp_url
    assert mcp.transport == "streamable-http"
    assert completion.model == settings.model
