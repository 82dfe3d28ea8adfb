from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import pytest

from toolloop.errors import ToolContentTypeMismatch, ToolExecutionFailed
from toolloop.tools.invoker import ToolInvoker


class _FakeService:
    def __init__(self, result: object) -> None:
        self.result = result
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def list_tools(self) -> list:
        return []

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> object:
        self.calls.append((name, arguments))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _content(*items: tuple[str, str | None], is_error: bool = False) -> object:
    return SimpleNamespace(
        content=[SimpleNamespace(type=kind, text=text) for kind, text in items],
        isError=is_error,
    )


@pytest.mark.asyncio
async def test_invoke_returns_first_text_content() -> None:
    service = _FakeService(_content(("text", "first"), ("text", "second")))

    output = await ToolInvoker(service).invoke("echo", {"x": 1})

    assert output == "first"
    assert service.calls == [("echo", {"x": 1})]


@pytest.mark.asyncio
async def test_non_text_content_is_a_type_mismatch() -> None:
    service = _FakeService(_content(("image", None), ("text", "later")))

    with pytest.raises(ToolContentTypeMismatch) as exc_info:
        await ToolInvoker(service).invoke("draw", {})

    assert exc_info.value.content_type == "image"


@pytest.mark.asyncio
async def test_empty_content_is_a_type_mismatch() -> None:
    with pytest.raises(ToolContentTypeMismatch):
        await ToolInvoker(_FakeService(_content())).invoke("noop", {})


@pytest.mark.asyncio
async def test_transport_error_is_wrapped() -> None:
    cause = ConnectionError("reset by peer")

    with pytest.raises(ToolExecutionFailed) as exc_info:
        await ToolInvoker(_FakeService(cause)).invoke("echo", {})

    assert exc_info.value.__cause__ is cause
    assert exc_info.value.tool_name == "echo"


@pytest.mark.asyncio
async def test_remote_error_result_is_execution_failure() -> None:
    service = _FakeService(_content(("text", "snippet index offline"), is_error=True))

    with pytest.raises(ToolExecutionFailed, match="snippet index offline"):
        await ToolInvoker(service).invoke("search", {})


@pytest.mark.asyncio
async def test_invoke_safely_turns_failures_into_error_payload() -> None:
    invoker = ToolInvoker(_FakeService(RuntimeError("boom")))

    output = await invoker.invoke_safely("echo", {})

    payload = json.loads(output)
    assert payload["error"].startswith("Function execution failed: ")
    assert "boom" in payload["error"]


@pytest.mark.asyncio
async def test_invoke_safely_recovers_type_mismatch() -> None:
    output = await ToolInvoker(_FakeService(_content(("image", None)))).invoke_safely("draw", {})
    assert "non-text content: image" in json.loads(output)["error"]


@pytest.mark.asyncio
async def test_invoke_logs_start_and_end(monkeypatch: pytest.MonkeyPatch) -> None:
    logs: list[str] = []

    def _capture(message: str, *args: object) -> None:
        logs.append(message)

    monkeypatch.setattr("toolloop.tools.invoker.logger.info", _capture)

    await ToolInvoker(_FakeService(_content(("text", "ok")))).invoke("echo", {"x": "a" * 100})

    assert logs.count("tool.call.start name={} {{ {} }}") == 1
    assert logs.count("tool.call.end name={} duration={:.3f}ms") == 1
