"""Runtime wiring: settings -> MCP session + completion client + loop."""

from __future__ import annotations

from toolloop.completion import CompletionClient
from toolloop.config import Settings
from toolloop.loop import ConversationLoop
from toolloop.mcp_client import MCPClient
from toolloop.tools.catalog import ToolCatalog
from toolloop.types import ConversationState, ToolDescriptor


def build_mcp_client(settings: Settings) -> MCPClient:
    return MCPClient(
        settings.mcp_url,
        transport=settings.mcp_transport,
        client_name=settings.client_name,
        client_version=settings.client_version,
        timeout_seconds=settings.mcp_timeout_seconds,
    )


def build_completion_client(settings: Settings) -> CompletionClient:
    return CompletionClient.create(
        base_url=settings.chat_url,
        api_key=settings.api_key,
        model=settings.model,
        timeout_seconds=settings.completion_timeout_seconds,
    )


async def list_remote_tools(settings: Settings) -> list[ToolDescriptor]:
    async with build_mcp_client(settings).connect() as mcp:
        catalog = await ToolCatalog.discover(mcp)
    return catalog.descriptors()


async def run_conversation(settings: Settings, prompt: str) -> ConversationState:
    """Connect once, discover tools and run one conversation to termination."""
    completion = build_completion_client(settings)
    try:
        async with build_mcp_client(settings).connect() as mcp:
            catalog = await ToolCatalog.discover(mcp)
            loop = ConversationLoop(
                completion=completion,
                catalog=catalog,
                max_turns=settings.max_turns,
                lenient_arguments=settings.lenient_arguments,
            )
            return await loop.run(prompt, system_prompt=settings.system_prompt)
    finally:
        await completion.close()
