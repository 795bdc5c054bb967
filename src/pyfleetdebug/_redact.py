"""Helpers for safe warning/debug logging of raw records.

Raw fleet logs can carry bearer tokens and precise driver locations, and a
single record is often several kilobytes.  This module provides a small
utility to redact sensitive fields and bound the size of record previews
before they reach a log line.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "authorization",
        "jwt",
        "token",
        "accesstoken",
        "apikey",
        "cookie",
    }
)

_MAX_DEPTH = 6
_MAX_ITEMS = 8


def redact_for_log(value: Any, *, max_string: int = 128, _depth: int = 0) -> Any:
    """Return a redacted, size-bounded copy of *value* suitable for logs."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        items = [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value[:_MAX_ITEMS]]
        if len(value) > _MAX_ITEMS:
            items.append(f"<{len(value) - _MAX_ITEMS} more>")
        return items

    return repr(value)
