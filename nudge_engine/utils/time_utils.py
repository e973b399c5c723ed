"""
Time and date helpers shared by the engine, HTTP adapter and CLI.

Timestamps are treated as already being in the user's local frame: the
wall-clock hour and minute of an ISO-8601 string are used as written, with
no timezone conversion. ``"2023-12-20T15:00:00Z"`` is 15:00.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 datetime string, accepting a trailing ``Z``.

    Args:
        value: e.g. ``"2023-12-20T15:00:00Z"`` or ``"2023-12-20T15:00:00+02:00"``.

    Returns:
        A ``datetime`` (aware when the string carries an offset).

    Raises:
        ValueError: If the string is not a valid ISO-8601 datetime.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def minute_of_day(value: str | datetime) -> int:
    """Return ``hour * 60 + minute`` of the wall-clock time in ``value``."""
    dt = parse_iso_datetime(value) if isinstance(value, str) else value
    return dt.hour * 60 + dt.minute


def date_from_timestamp(timestamp: str | None) -> str:
    """Return the ``YYYY-MM-DD`` date of a UTC timestamp, or today's UTC date.

    Aware timestamps are normalised to UTC first; naive ones are taken as UTC.

    Raises:
        ValueError: If ``timestamp`` is not a valid ISO-8601 datetime.
    """
    if not timestamp:
        return today_iso()
    dt = parse_iso_datetime(timestamp)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date().isoformat()


def today_iso() -> str:
    """Today's UTC date as ``YYYY-MM-DD``."""
    return utcnow().date().isoformat()


def is_iso_date(value: str) -> bool:
    """True if ``value`` is a valid ``YYYY-MM-DD`` calendar date."""
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return len(value) == 10
