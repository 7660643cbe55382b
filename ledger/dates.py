"""
Date Normalization

Timestamps are stored with full precision but displayed and bucketed by day.
``normalize`` is the single place that turns one into the other.

LENIENCY: ``normalize`` is not a validator. A string with no date/time
separator is returned unchanged. Callers that need a real date must check
the result themselves, or use ``parse_timestamp``.
"""

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Union

# Tokens that may sit between the date and the time-of-day.
SEPARATORS = ("T", " ")

# fromisoformat on 3.10 takes exactly 3 or 6 fractional digits
_FRACTION = re.compile(r"\.(\d+)")


def normalize(timestamp: Union[str, date, datetime, None]) -> str:
    """
    Truncate a timestamp to its date portion.

    "2024-05-20T12:34:56" -> "2024-05-20"
    "2024-05-20 12:34:56" -> "2024-05-20"
    "2024-05-20"          -> "2024-05-20"  (no separator, returned as-is)
    """
    if timestamp is None:
        return ""
    if isinstance(timestamp, datetime):
        return timestamp.date().isoformat()
    if isinstance(timestamp, date):
        return timestamp.isoformat()
    if not timestamp:
        return ""

    positions = [timestamp.find(sep) for sep in SEPARATORS]
    positions = [pos for pos in positions if pos != -1]
    if not positions:
        return timestamp
    return timestamp[:min(positions)] or timestamp


def now_timestamp(tz: tzinfo = timezone.utc) -> str:
    """Current instant in the reference timezone, ISO-8601."""
    return datetime.now(tz).isoformat()


def today(tz: tzinfo = timezone.utc) -> str:
    """Today's date (YYYY-MM-DD) in the reference timezone."""
    return normalize(now_timestamp(tz))


def parse_timestamp(value: Union[str, date, datetime]) -> datetime:
    """
    Strictly parse an ISO-8601 date or datetime.

    Raises ValueError for anything that is not a calendar date.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not a timestamp: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text, count=1)
    return datetime.fromisoformat(text)


def to_timezone(value: Any, tz: tzinfo) -> Any:
    """
    Re-express a timestamp that carries an offset in the reference timezone.

    "2024-05-01T23:30:00-05:00" in UTC -> "2024-05-02T04:30:00+00:00"

    Naive timestamps and bare dates are already local to ``tz`` and come
    back unchanged, as does anything unparseable.
    """
    try:
        parsed = parse_timestamp(value)
    except (TypeError, ValueError):
        return value
    if parsed.tzinfo is None:
        return value
    return parsed.astimezone(tz).isoformat()


def is_date_key(value: str) -> bool:
    """True when ``value`` is a real YYYY-MM-DD calendar date."""
    if len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True
