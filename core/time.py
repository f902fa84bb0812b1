"""Time-related helpers.

This module centralizes helpers for obtaining and serialising timestamps in
UTC.  Returning timestamps through a single function guarantees that the
format stays consistent across the entire application and lets tests freeze
the clock in one place.
"""

from __future__ import annotations

from datetime import datetime, timezone

# Go's zero ``time.Time`` as written by older records.
_ZERO_TIME_PREFIX = "0001-01-01T00:00:00"


def utc_now() -> datetime:
    """Return the current UTC time as an aware ``datetime`` instance."""

    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive values are assumed UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_rfc3339(value: datetime) -> str:
    """Format *value* as RFC 3339 in UTC, keeping only significant fractions."""

    value = ensure_utc(value)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    return text + "Z"


def parse_rfc3339(value: str) -> datetime | None:
    """Parse an RFC 3339 timestamp.

    Returns ``None`` for empty values and for Go's zero time, which older
    records use to mean "unset".
    """

    text = (value or "").strip()
    if not text or text.startswith(_ZERO_TIME_PREFIX):
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    if "." in text:
        head, _, tail = text.partition(".")
        digits = ""
        rest = tail
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    return ensure_utc(datetime.fromisoformat(text))
