"""Display formatters used by column ``render`` callables."""

from datetime import date, datetime, timezone
from typing import Any

_EMPTY_DATE: str = "N/A"


def _parse_date(value: Any) -> date | datetime | None:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Milliseconds since the epoch, as returned by JSON APIs.
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def format_date_medium(value: Any) -> str:
    """Format a date like ``"Jan 5, 2025"``.

    Accepts ``date``/``datetime`` objects, ISO-8601 strings and epoch
    milliseconds.  Empty input gives ``"N/A"``; unparsable input is
    echoed back unchanged.

    Examples:
        ``"2025-01-05T10:30:00Z"`` -> ``"Jan 5, 2025"``
        ``None`` -> ``"N/A"``
    """
    if value is None or value == "":
        return _EMPTY_DATE
    parsed = _parse_date(value)
    if parsed is None:
        return str(value)
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def pluralize(count: int, noun: str, plural: str | None = None) -> str:
    """``pluralize(1, "role")`` -> ``"1 role"``; ``pluralize(3, "role")`` -> ``"3 roles"``."""
    word = noun if count == 1 else (plural or f"{noun}s")
    return f"{count:,} {word}"
