"""Shared datetime helpers for enforcing UTC awareness."""

from __future__ import annotations

from datetime import UTC, datetime


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware datetime in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    """Return the current UTC datetime."""

    return datetime.now(UTC)


def truncate_to_seconds(value: datetime) -> datetime:
    """Drop sub-second precision after normalizing to UTC."""

    return ensure_utc(value).replace(microsecond=0)


def to_unix(value: datetime) -> int:
    return int(ensure_utc(value).timestamp())


# 9999-12-31T23:59:59Z, the last second a datetime can hold.
MAX_UNIX_TIMESTAMP = 253402300799


def from_unix(seconds: int | float) -> datetime:
    """Convert Unix seconds to an aware UTC datetime.

    Raises:
        ValueError: If the value is outside the range a datetime can represent.
    """

    try:
        return datetime.fromtimestamp(int(seconds), tz=UTC)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"timestamp {seconds} is out of range") from exc
