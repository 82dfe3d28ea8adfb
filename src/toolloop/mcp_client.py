"""MCP session wrapper.

Opens one session against the tool-execution service, performs the
``initialize`` handshake and exposes ``list_tools`` / ``call_tool``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import timedelta
from typing import Any

from loguru import logger
from mcp import ClientSession, types

from toolloop.errors import MCPConnectionError
from toolloop.types import ToolDescriptor

SUPPORTED_TRANSPORTS = ("streamable-http", "sse")


def _first_leaf(group: BaseExceptionGroup) -> BaseException:
    """Descend through nested exception groups to the first concrete error."""
    current: BaseException = group
    while isinstance(current, BaseExceptionGroup):
        current = current.exceptions[0]
    return current


class MCPClient:
    """Thin wrapper around the official MCP SDK ``ClientSession``."""

    def __init__(
        self,
        server_url: str,
        *,
        transport: str = "streamable-http",
        client_name: str = "micro agent",
        client_version: str = "0.0.0",
        timeout_seconds: float = 30.0,
    ) -> None:
        self.server_url = server_url
        self.transport = transport.lower()
        if self.transport not in SUPPORTED_TRANSPORTS:
            raise ValueError(f"Unsupported MCP transport: {transport}. Supported: {', '.join(SUPPORTED_TRANSPORTS)}")
        self.client_info = types.Implementation(name=client_name, version=client_version)
        self.timeout_seconds = timeout_seconds
        self._session: ClientSession | None = None

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[MCPClient]:
        """Open the transport, run the handshake and yield a ready client.

        Any failure while opening surfaces as ``MCPConnectionError``; a pure
        cancellation is re-raised as is. The exit stack is closed explicitly
        and never receives the caller's exception, which therefore propagates
        unwrapped.
        """
        stack = AsyncExitStack()
        try:
            session = await self._open(stack)
        except BaseException as exc:
            # The transport task group reports the real cause (e.g. a refused
            # connection) only when it is unwound, as an exception group.
            failure: BaseException = exc
            try:
                await stack.__aexit__(type(exc), exc, exc.__traceback__)
            except BaseException as close_exc:
                failure = close_exc
            error = self._connection_error(failure)
            if error is None:
                raise failure
            raise error from failure
        logger.info(
            "mcp.connected url={} transport={} client={}/{}",
            self.server_url,
            self.transport,
            self.client_info.name,
            self.client_info.version,
        )
        self._session = session
        try:
            yield self
        finally:
            self._session = None
            await self._close(stack)

    def _connection_error(self, failure: BaseException) -> MCPConnectionError | None:
        if isinstance(failure, BaseExceptionGroup):
            errors, _ = failure.split(Exception)
            if errors is None:
                return None
            cause: BaseException = _first_leaf(errors)
        elif isinstance(failure, Exception):
            cause = failure
        else:
            return None
        logger.warning("mcp.connect.failed url={} error={!r}", self.server_url, cause)
        return MCPConnectionError(f"cannot connect to MCP server at {self.server_url}: {cause}")

    async def _close(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception:
            logger.exception("mcp.close.error url={}", self.server_url)

    async def _open(self, stack: AsyncExitStack) -> ClientSession:
        if self.transport == "sse":
            from mcp.client.sse import sse_client

            read_stream, write_stream = await stack.enter_async_context(
                sse_client(self.server_url, timeout=self.timeout_seconds)
            )
        else:
            from mcp.client.streamable_http import streamablehttp_client

            read_stream, write_stream, _ = await stack.enter_async_context(
                streamablehttp_client(self.server_url, timeout=timedelta(seconds=self.timeout_seconds))
            )

        session = await stack.enter_async_context(
            ClientSession(
                read_stream,
                write_stream,
                read_timeout_seconds=timedelta(seconds=self.timeout_seconds),
                client_info=self.client_info,
            )
        )
        await session.initialize()
        return session

    def _require_session(self, operation: str) -> ClientSession:
        if self._session is None:
            raise RuntimeError(f"MCPClient.{operation}() must be called within connect()")
        return self._session

    async def list_tools(self) -> list[ToolDescriptor]:
        session = self._require_session("list_tools")
        result = await session.list_tools()
        return [
            ToolDescriptor(
                name=tool.name,
                description=tool.description or "",
                input_schema=dict(tool.inputSchema or {}),
            )
            for tool in result.tools
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        session = self._require_session("call_tool")
        return await session.call_tool(name, arguments=arguments)
