"""Validation helpers for request payloads."""

from __future__ import annotations

from typing import Any

from crypto_tracker.errors import APIError, ValidationError
from crypto_tracker.utils.datetime import MAX_UNIX_TIMESTAMP


def require_symbol(value: Any, *, field: str = "symbol") -> str:
    """Ensure a symbol field was supplied; format checks happen in the domain layer."""

    if value is None or not str(value).strip():
        raise ValidationError(f"'{field}' is required.", payload={"field": field})
    return str(value)


def validate_timestamp(value: Any, *, field: str = "timestamp") -> int:
    """Ensure a Unix timestamp is present, strictly positive and representable."""

    if value is None:
        raise ValidationError(f"'{field}' is required.", payload={"field": field})
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"'{field}' must be an integer.", payload={"field": field})
    if value <= 0:
        raise APIError(
            f"{field} must be > 0",
            status_code=400,
            code="invalid_timestamp",
            payload={"field": field},
        )
    if value > MAX_UNIX_TIMESTAMP:
        raise APIError(
            f"{field} must be <= {MAX_UNIX_TIMESTAMP}",
            status_code=400,
            code="invalid_timestamp",
            payload={"field": field},
        )
    return value


def validate_time_range(start: Any, end: Any) -> tuple[int, int]:
    """Validate an inclusive ``[start, end]`` range of Unix timestamps."""

    start_ts = validate_timestamp(start, field="start")
    end_ts = validate_timestamp(end, field="end")
    if start_ts > end_ts:
        raise ValidationError(
            "'start' must not be after 'end'.",
            payload={"field_errors": {"start": ["Must not be after end."]}},
        )
    return start_ts, end_ts
