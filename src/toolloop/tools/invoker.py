"""Tool invocation against the tool-execution service."""

from __future__ import annotations

import json
import time
from typing import Any

from loguru import logger

from toolloop.errors import ToolCallError, ToolContentTypeMismatch, ToolExecutionFailed
from toolloop.types import ToolService

ARGUMENT_PREVIEW_WIDTH = 30


def _shorten_text(text: str, width: int = ARGUMENT_PREVIEW_WIDTH, placeholder: str = "...") -> str:
    if len(text) <= width:
        return text
    available = width - len(placeholder)
    if available <= 0:
        return placeholder
    return text[:available] + placeholder


def _render_arguments(arguments: dict[str, Any]) -> str:
    params: list[str] = []
    for key, value in arguments.items():
        try:
            rendered = json.dumps(value, ensure_ascii=False)
        except TypeError:
            rendered = repr(value)
        params.append(f"{key}={_shorten_text(rendered)}")
    return ", ".join(params)


def error_payload(exc: ToolCallError) -> str:
    """Render a tool-call failure as the text the model receives."""
    return json.dumps({"error": f"Function execution failed: {exc}"}, ensure_ascii=False)


def first_text_content(tool_name: str, result: Any) -> str:
    contents = list(getattr(result, "content", None) or [])
    if not contents:
        raise ToolContentTypeMismatch(tool_name, None)
    first = contents[0]
    content_type = getattr(first, "type", None)
    text = getattr(first, "text", None)
    if content_type != "text" or not isinstance(text, str):
        raise ToolContentTypeMismatch(tool_name, content_type)
    return text


class ToolInvoker:
    """Executes one decoded tool call and normalizes the result into text."""

    def __init__(self, service: ToolService) -> None:
        self._service = service

    async def invoke(self, name: str, arguments: dict[str, Any]) -> str:
        """Call the tool and return the text of its first content element.

        Raises:
            ToolExecutionFailed: transport failure or an ``isError`` result.
            ToolContentTypeMismatch: the first content element is not text.
        """
        logger.info("tool.call.start name={} {{ {} }}", name, _render_arguments(arguments))
        start = time.monotonic()
        try:
            try:
                result = await self._service.call_tool(name, arguments)
            except Exception as exc:
                raise ToolExecutionFailed(name, f"tool '{name}' failed: {exc}") from exc

            if getattr(result, "isError", False):
                try:
                    detail = first_text_content(name, result)
                except ToolContentTypeMismatch:
                    detail = "remote error"
                raise ToolExecutionFailed(name, f"tool '{name}' reported an error: {detail}")

            return first_text_content(name, result)
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)

    async def invoke_safely(self, name: str, arguments: dict[str, Any]) -> str:
        """Like ``invoke`` but turns tool-call failures into an error payload."""
        try:
            return await self.invoke(name, arguments)
        except ToolCallError as exc:
            logger.warning("tool.call.error name={} error={}", name, exc)
            return error_payload(exc)
