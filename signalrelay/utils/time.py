"""Time helpers with timezone-aware UTC defaults."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return timezone-aware current UTC datetime."""
    return datetime.now(UTC)


def coerce_timestamp(value: object, default: datetime | None = None) -> datetime:
    """Turn an inbound timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings and epoch numbers. Values above 1e11
    are treated as epoch milliseconds, which is what chat clients usually send.
    Anything unparseable falls back to ``default`` (or now).
    """
    fallback = default or utc_now()

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    if isinstance(value, bool):
        return fallback

    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return fallback

    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return fallback
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)

    return fallback
