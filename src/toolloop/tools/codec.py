"""Tool-call argument decoding."""

from __future__ import annotations

import json
from typing import Any

from toolloop.errors import ArgumentDecodeError


def decode_arguments(payload: str | None, *, tool_name: str = "-") -> dict[str, Any]:
    """Decode a text-encoded argument payload into a name->value mapping.

    An empty payload decodes to an empty mapping. Anything that does not parse
    as a JSON object raises ``ArgumentDecodeError``.
    """
    raw = (payload or "").strip()
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ArgumentDecodeError(tool_name, raw, str(exc)) from exc
    if not isinstance(decoded, dict):
        raise ArgumentDecodeError(tool_name, raw, f"expected a JSON object, got {type(decoded).__name__}")
    return decoded
