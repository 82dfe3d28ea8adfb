"""Tool catalog: MCP descriptors translated for the completion service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from functools import partial
from typing import Any

from jsonschema import SchemaError, validators
from jsonschema.exceptions import best_match
from loguru import logger
from referencing.exceptions import Unresolvable

from toolloop.errors import ArgumentValidationError, MissingToolName, UnknownToolError
from toolloop.tools.invoker import ToolInvoker
from toolloop.types import ToolDescriptor, ToolService

Validator = Callable[[dict[str, Any]], None]
ToolHandler = Callable[[dict[str, Any]], Awaitable[str]]


def to_openai_tool(descriptor: ToolDescriptor) -> dict[str, Any]:
    """Translate one tool descriptor into a Chat Completions function tool."""
    if not descriptor.name:
        raise MissingToolName(f"tool descriptor without a name: {descriptor!r}")
    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": {
                "type": "object",
                "properties": descriptor.properties,
                "required": descriptor.required,
            },
        },
    }


def to_openai_tools(descriptors: Iterable[ToolDescriptor]) -> list[dict[str, Any]]:
    return [to_openai_tool(descriptor) for descriptor in descriptors]


def _compile_validator(descriptor: ToolDescriptor) -> Validator | None:
    schema = descriptor.input_schema
    if not schema:
        return None
    try:
        validator_cls = validators.validator_for(schema)
        validator_cls.check_schema(schema)
        compiled = validator_cls(schema)
    except (SchemaError, Unresolvable) as exc:
        logger.warning("catalog.schema.invalid name={} error={}", descriptor.name, getattr(exc, "message", exc))
        return None

    def _validate(arguments: dict[str, Any]) -> None:
        # $ref targets resolve lazily, so a dangling one only shows up here.
        try:
            error = best_match(compiled.iter_errors(arguments))
        except Unresolvable as exc:
            raise ArgumentValidationError(descriptor.name, f"unresolvable schema reference: {exc}") from exc
        if error is not None:
            raise ArgumentValidationError(descriptor.name, error.message)

    return _validate


@dataclass(frozen=True)
class CatalogEntry:
    """Dispatch-table row for one tool: schema, validator and invocation handle."""

    descriptor: ToolDescriptor
    openai_tool: dict[str, Any]
    validator: Validator | None = None
    invoke: ToolHandler | None = None


class ToolCatalog:
    """Dispatch table built once at discovery time (name -> schema + validator + invoke)."""

    def __init__(self, descriptors: Iterable[ToolDescriptor] = (), *, invoker: ToolInvoker | None = None) -> None:
        self._entries: dict[str, CatalogEntry] = {}
        self._invoker = invoker
        for descriptor in descriptors:
            self.register(descriptor)

    @classmethod
    async def discover(cls, service: ToolService) -> ToolCatalog:
        descriptors = await service.list_tools()
        for descriptor in descriptors:
            logger.info(
                "catalog.tool name={} description={} schema={}",
                descriptor.name,
                descriptor.description,
                descriptor.input_schema,
            )
        return cls(descriptors, invoker=ToolInvoker(service))

    def register(self, descriptor: ToolDescriptor) -> None:
        openai_tool = to_openai_tool(descriptor)
        if descriptor.name in self._entries:
            logger.warning("catalog.tool.duplicate name={}", descriptor.name)
        self._entries[descriptor.name] = CatalogEntry(
            descriptor=descriptor,
            openai_tool=openai_tool,
            validator=_compile_validator(descriptor),
            invoke=partial(self._invoker.invoke_safely, descriptor.name) if self._invoker is not None else None,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    @property
    def names(self) -> list[str]:
        return list(self._entries)

    def get(self, name: str) -> CatalogEntry | None:
        return self._entries.get(name)

    def descriptors(self) -> list[ToolDescriptor]:
        return [entry.descriptor for entry in self._entries.values()]

    def openai_tools(self) -> list[dict[str, Any]]:
        return [entry.openai_tool for entry in self._entries.values()]

    def validate(self, name: str, arguments: dict[str, Any]) -> None:
        entry = self.get(name)
        if entry is None:
            raise UnknownToolError(name)
        if entry.validator is not None:
            entry.validator(arguments)

    async def invoke(self, name: str, arguments: dict[str, Any]) -> str:
        """Run the tool through its bound handler; failures come back as an error payload."""
        entry = self.get(name)
        if entry is None:
            raise UnknownToolError(name)
        if entry.invoke is None:
            raise RuntimeError(f"tool '{name}' has no invocation handle; build the catalog with an invoker")
        return await entry.invoke(arguments)
