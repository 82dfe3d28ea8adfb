"""Completion service client (OpenAI Chat Completions compatible)."""

from __future__ import annotations

from typing import Any

from loguru import logger
from openai import AsyncOpenAI, OpenAIError

from toolloop.errors import CompletionServiceError
from toolloop.types import FinishReason, Message, ToolCall, TurnResult

TEMPERATURE = 0.0


def parse_tool_calls(message: Any) -> tuple[ToolCall, ...]:
    calls: list[ToolCall] = []
    for idx, tool_call in enumerate(getattr(message, "tool_calls", None) or []):
        function = getattr(tool_call, "function", None)
        if function is None:
            logger.warning("completion.tool_call.skipped index={} type={}", idx, getattr(tool_call, "type", None))
            continue
        calls.append(
            ToolCall(
                id=getattr(tool_call, "id", None) or str(idx),
                name=getattr(function, "name", "") or "",
                arguments=getattr(function, "arguments", "") or "",
            )
        )
    return tuple(calls)


def parse_response(response: Any) -> TurnResult:
    """Turn a raw chat completion into a ``TurnResult``."""
    choices = getattr(response, "choices", None)
    if not choices:
        raise CompletionServiceError("completion response carried no choices")
    choice = choices[0]
    message = getattr(choice, "message", None)
    if message is None:
        raise CompletionServiceError("completion choice carried no message")

    raw_finish = getattr(choice, "finish_reason", None)
    candidate = Message.assistant(
        content=getattr(message, "content", None) or "",
        tool_calls=parse_tool_calls(message),
    )
    return TurnResult(
        finish_reason=FinishReason.parse(raw_finish),
        message=candidate,
        raw_finish_reason=raw_finish,
    )


class CompletionClient:
    """Sends the conversation plus tool catalog and returns one candidate turn.

    Sampling is fixed for determinism and strictly sequential tool use:
    ``temperature`` is always 0 and parallel tool calls are disabled.
    """

    def __init__(self, client: AsyncOpenAI, *, model: str) -> None:
        self._client = client
        self.model = model

    @classmethod
    def create(
        cls,
        *,
        base_url: str,
        api_key: str,
        model: str,
        timeout_seconds: float | None = None,
    ) -> CompletionClient:
        client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )
        return cls(client, model=model)

    def build_request(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": TEMPERATURE,
        }
        if tools:
            request["tools"] = tools
            request["parallel_tool_calls"] = False
        return request

    async def complete(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]) -> TurnResult:
        request = self.build_request(messages, tools)
        try:
            response = await self._client.chat.completions.create(**request)
        except OpenAIError as exc:
            raise CompletionServiceError(f"completion request failed: {exc}") from exc
        result = parse_response(response)
        logger.info(
            "completion.result model={} finish_reason={} tool_calls={}",
            self.model,
            result.raw_finish_reason,
            len(result.message.tool_calls),
        )
        return result

    async def close(self) -> None:
        await self._client.close()
