"""Parsing of runtime timestamps."""

from __future__ import annotations

import re
from datetime import datetime, timezone

# Docker reports nanosecond precision; datetime keeps microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_runtime_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp as reported by Docker.

    Returns None for missing or unparsable values and for Docker's zero time
    (``0001-01-01T00:00:00Z``, reported for never-started containers).
    """
    if not value:
        return None

    text = _FRACTION_RE.sub(r"\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if parsed.year <= 1:
        return None
    return parsed


def from_unix(seconds: int | float | None) -> datetime:
    """Convert a Unix timestamp (seconds) to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds or 0, tz=timezone.utc)
