"""Normalization helpers.

Centralizes defensive parsing of raw log fields: key casing, timestamps,
numeric coercion and nested lookups.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime
from typing import Any

_FRACTION_RE = re.compile(r"\.(\d+)")


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def lowercase_keys(data: Any) -> Any:
    """Return a deep copy of *data* with every mapping key lower-cased.

    Lists are walked element by element; scalars are returned as-is.  The
    input is never mutated, so callers can keep the original record around.
    """

    if isinstance(data, dict):
        return {str(key).lower(): lowercase_keys(value) for key, value in data.items()}
    if isinstance(data, list):
        return [lowercase_keys(item) for item in data]
    return data


def get_path(data: Any, *path: str, default: Any = None) -> Any:
    """Walk nested dicts by key; return *default* as soon as a hop is missing."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def strip_prefix(value: Any, prefix: str) -> Any:
    if isinstance(value, str) and value.startswith(prefix):
        return value[len(prefix) :]
    return value


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize numeric timestamps to epoch seconds.

    - Empty/missing -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    """

    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        ts = float(value)
    except (TypeError, ValueError):
        return None
    if ts <= 0:
        return None
    if ts > 1e11:
        ts /= 1000.0
    return ts


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a log timestamp into an aware UTC datetime.

    Accepts RFC 3339 strings (``Z`` suffix, up to nanosecond precision),
    epoch seconds or milliseconds, protobuf-style ``{"seconds", "nanos"}``
    mappings and datetimes.  Returns ``None`` for anything else.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, dict):
        seconds = safe_float(value.get("seconds"))
        if seconds is None:
            return None
        nanos = safe_float(value.get("nanos")) or 0.0
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=UTC)
    if isinstance(value, (int, float)):
        ts = normalize_timestamp_seconds(value)
        return datetime.fromtimestamp(ts, tz=UTC) if ts is not None else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.isdigit():
        return parse_timestamp(int(text))
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # datetime only keeps microseconds; Cloud Logging emits nanoseconds.
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way Cloud Logging does (``...Z`` suffix)."""
    text = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def format_duration(duration_ms: float) -> str:
    """Format a duration in milliseconds as ``"1 hours 2 minutes 3 seconds"``.

    Zero components are omitted, so sub-second durations yield ``""``.
    """

    sec_num = duration_ms / 1000
    hours = math.floor(sec_num / 3600)
    minutes = math.floor((sec_num - hours * 3600) / 60)
    seconds = math.floor(sec_num - hours * 3600 - minutes * 60)
    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours} hours")
    if minutes > 0:
        parts.append(f"{minutes} minutes")
    if seconds > 0:
        parts.append(f"{seconds} seconds")
    return " ".join(parts)
