"""Conversation loop driving completion turns and sequential tool dispatch."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Protocol

from loguru import logger

from toolloop.errors import (
    AnomalousFinish,
    ArgumentDecodeError,
    ConversationAnomaly,
    EmptyToolCallAnomaly,
    ToolCallError,
    TurnLimitExceeded,
    UnknownToolError,
)
from toolloop.tools.catalog import ToolCatalog
from toolloop.tools.codec import decode_arguments
from toolloop.tools.invoker import error_payload
from toolloop.types import ConversationState, FinishReason, LoopStatus, Message, ToolCall, TurnResult

DEFAULT_MAX_TURNS = 25
RESULT_PREVIEW_LEN = 200


class Completion(Protocol):
    async def complete(self, messages: list[dict], tools: list[dict]) -> TurnResult: ...


def apply_tool_turn(
    state: ConversationState,
    assistant: Message,
    outcomes: Sequence[tuple[ToolCall, str]],
) -> ConversationState:
    """Record intent (the assistant tool-call message) before every outcome."""
    tool_messages = [Message.tool(output, call.id) for call, output in outcomes]
    next_state = state.append(assistant, *tool_messages)
    return replace(
        next_state,
        turns=state.turns + 1,
        tool_results=(*state.tool_results, *(output for _, output in outcomes)),
    )


def apply_stop(state: ConversationState, message: Message) -> ConversationState:
    next_state = state.append(message)
    return replace(
        next_state,
        turns=state.turns + 1,
        status=LoopStatus.TERMINATED,
        final_content=message.content,
    )


def apply_anomaly(state: ConversationState, anomaly: ConversationAnomaly) -> ConversationState:
    return replace(state, turns=state.turns + 1, status=LoopStatus.TERMINATED, anomaly=anomaly)


class ConversationLoop:
    """Owns the conversation state and drives turns until termination."""

    def __init__(
        self,
        *,
        completion: Completion,
        catalog: ToolCatalog,
        max_turns: int = DEFAULT_MAX_TURNS,
        lenient_arguments: bool = True,
    ) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be positive")
        self._completion = completion
        self._catalog = catalog
        self._max_turns = max_turns
        self._lenient_arguments = lenient_arguments

    async def run(self, prompt: str, *, system_prompt: str | None = None) -> ConversationState:
        return await self.run_until_done(ConversationState.seed(prompt, system_prompt=system_prompt))

    async def run_until_done(self, state: ConversationState) -> ConversationState:
        while state.running:
            state = await self.run_turn(state)
        if state.anomaly is not None:
            logger.warning("loop.unresolved turns={} anomaly={}", state.turns, state.anomaly)
        else:
            logger.info("loop.done turns={} messages={}", state.turns, len(state.messages))
        return state

    async def run_turn(self, state: ConversationState) -> ConversationState:
        """Run one completion request plus any resulting tool calls."""
        if not state.running:
            return state
        if state.turns >= self._max_turns:
            raise TurnLimitExceeded(self._max_turns)

        turn = state.turns + 1
        logger.info("loop.turn.start turn={} messages={}", turn, len(state.messages))
        result = await self._completion.complete(state.openai_messages(), self._catalog.openai_tools())

        if result.finish_reason is FinishReason.TOOL_CALLS:
            calls = result.message.tool_calls
            if not calls:
                logger.warning("loop.turn.empty_tool_calls turn={}", turn)
                return apply_anomaly(state, EmptyToolCallAnomaly())
            outcomes: list[tuple[ToolCall, str]] = []
            for call in calls:
                output = await self._dispatch(call)
                logger.info(
                    "loop.tool.result turn={} id={} name={} content={}",
                    turn,
                    call.id,
                    call.name,
                    output[:RESULT_PREVIEW_LEN],
                )
                outcomes.append((call, output))
            return apply_tool_turn(state, result.message, outcomes)

        if result.finish_reason is FinishReason.STOP:
            logger.info("loop.turn.stop turn={}", turn)
            return apply_stop(state, result.message)

        logger.warning("loop.turn.unexpected_finish turn={} finish_reason={}", turn, result.raw_finish_reason)
        return apply_anomaly(state, AnomalousFinish(result.raw_finish_reason))

    async def _dispatch(self, call: ToolCall) -> str:
        if call.name not in self._catalog:
            return error_payload(UnknownToolError(call.name))

        try:
            arguments = decode_arguments(call.arguments, tool_name=call.name)
        except ArgumentDecodeError as exc:
            if not self._lenient_arguments:
                logger.warning("loop.arguments.rejected name={} error={}", call.name, exc.reason)
                return error_payload(exc)
            logger.warning("loop.arguments.fallback name={} error={}", call.name, exc.reason)
            return await self._catalog.invoke(call.name, {})

        try:
            self._catalog.validate(call.name, arguments)
        except ToolCallError as exc:
            logger.warning("loop.arguments.invalid name={} error={}", call.name, exc)
            return error_payload(exc)
        return await self._catalog.invoke(call.name, arguments)
