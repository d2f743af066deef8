"""Domain entities and error taxonomy for tracked currencies and price snapshots."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from crypto_tracker.utils.datetime import ensure_utc, truncate_to_seconds, utc_now

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]{1,10}$")


class TrackerError(Exception):
    """Base class for domain-level failures surfaced to callers."""

    code: str = "tracker_error"
    default_message: str = "Crypto tracker error."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidSymbolError(TrackerError):
    code = "invalid_symbol"
    default_message = "invalid cryptocurrency symbol"


class DuplicateCurrencyError(TrackerError):
    code = "duplicate_currency"
    default_message = "cryptocurrency already exists"


class NotTrackedError(TrackerError):
    code = "not_tracked"
    default_message = "cryptocurrency not tracked"


class NegativePriceError(TrackerError):
    code = "negative_price"
    default_message = "price must be non-negative"


class TimestampFutureError(TrackerError):
    code = "timestamp_future"
    default_message = "timestamp cannot be in the future"


class DuplicatePriceError(TrackerError):
    code = "duplicate_price"
    default_message = "price already exists for this timestamp"


class PriceNotFoundError(TrackerError):
    code = "price_not_found"
    default_message = "price not found"


class StoreError(TrackerError):
    """Generic persistence failure that is not a business rule violation."""

    code = "store_error"
    default_message = "price store unavailable"


def normalize_symbol(raw: str | None) -> str:
    """Trim and uppercase a raw symbol, rejecting anything outside ``[A-Z0-9]{1,10}``."""

    if raw is None:
        raise InvalidSymbolError()
    normalized = str(raw).strip().upper()
    if not SYMBOL_PATTERN.fullmatch(normalized):
        raise InvalidSymbolError(f"invalid cryptocurrency symbol '{normalized}'")
    return normalized


@dataclass(frozen=True)
class Currency:
    """A tracked cryptocurrency symbol."""

    id: str
    symbol: str
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        object.__setattr__(self, "updated_at", ensure_utc(self.updated_at))


@dataclass(frozen=True)
class PriceSnapshot:
    """A single persisted (currency, second, USD price) observation."""

    currency_id: str
    timestamp: datetime
    price: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", truncate_to_seconds(self.timestamp))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        object.__setattr__(self, "price", float(self.price))


def new_currency(raw_symbol: str) -> Currency:
    """Build a new Currency with a fresh identifier and creation timestamps."""

    symbol = normalize_symbol(raw_symbol)
    now = utc_now()
    return Currency(id=str(uuid.uuid4()), symbol=symbol, created_at=now, updated_at=now)


def new_price_snapshot(currency_id: str, timestamp: datetime, price: float) -> PriceSnapshot:
    """Validate and build a snapshot.

    Raises:
        NegativePriceError: If ``price`` is below zero, whatever the timestamp.
        TimestampFutureError: If ``timestamp`` lies strictly after now.
    """

    if price < 0:
        raise NegativePriceError()
    now = utc_now()
    observed = ensure_utc(timestamp)
    if observed > now:
        raise TimestampFutureError()
    return PriceSnapshot(
        currency_id=currency_id,
        timestamp=observed,
        price=price,
        created_at=now,
    )
