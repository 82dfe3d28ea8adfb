"""Tool-side collaborators of the conversation loop."""

from toolloop.tools.catalog import ToolCatalog, to_openai_tool, to_openai_tools
from toolloop.tools.codec import decode_arguments
from toolloop.tools.invoker import ToolInvoker, error_payload

__all__ = [
    "ToolCatalog",
    "ToolInvoker",
    "decode_arguments",
    "error_payload",
    "to_openai_tool",
    "to_openai_tools",
]
