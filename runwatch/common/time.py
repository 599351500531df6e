"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def isoformat_utc(value: dt.datetime) -> str:
    """Render an aware datetime as millisecond ISO-8601 with a ``Z`` suffix.

    >>> isoformat_utc(dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.UTC))
    '2024-05-01T12:00:00.000Z'

    """
    return (
        value.astimezone(dt.UTC)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
