"""Nearest-timestamp lookup policy and the price query service."""

from __future__ import annotations

import logging
from datetime import datetime

from crypto_tracker.domain import PriceNotFoundError, PriceSnapshot, normalize_symbol
from crypto_tracker.services.repository import CryptoRepository
from crypto_tracker.utils.datetime import from_unix, truncate_to_seconds

logger = logging.getLogger(__name__)


def choose_nearest(
    target: datetime,
    older: PriceSnapshot | None,
    newer: PriceSnapshot | None,
) -> PriceSnapshot:
    """Pick the snapshot closest to ``target``.

    ``older`` is the latest snapshot strictly before the target and ``newer``
    the earliest one strictly after it. On equal distance the older snapshot
    wins.

    Raises:
        PriceNotFoundError: If neither candidate exists.
    """

    if older is None and newer is None:
        raise PriceNotFoundError()
    if older is None:
        return newer  # type: ignore[return-value]
    if newer is None:
        return older

    target = truncate_to_seconds(target)
    if target - older.timestamp <= newer.timestamp - target:
        return older
    return newer


class PriceHistory:
    """Read side of the price history store."""

    def __init__(self, repository: CryptoRepository) -> None:
        self._repository = repository

    def get_price(self, symbol: str, unix_timestamp: int) -> PriceSnapshot:
        """Return the snapshot nearest to ``unix_timestamp`` for ``symbol``.

        Raises:
            ValueError: If the timestamp is not a positive number of seconds.
            InvalidSymbolError: If the symbol is malformed.
            NotTrackedError: If the symbol is not tracked.
            PriceNotFoundError: If the currency has no snapshots at all.
        """

        if unix_timestamp <= 0:
            raise ValueError("timestamp must be > 0")
        normalized = normalize_symbol(symbol)
        snapshot = self._repository.get_price_snapshot(normalized, from_unix(unix_timestamp))
        logger.debug(
            "Resolved %s price for %s to snapshot at %s",
            normalized,
            unix_timestamp,
            snapshot.timestamp.isoformat(),
        )
        return snapshot

    def get_history(self, symbol: str, start: int, end: int) -> list[PriceSnapshot]:
        """Return every snapshot of ``symbol`` between two Unix timestamps, inclusive."""

        if start <= 0 or end <= 0:
            raise ValueError("timestamps must be > 0")
        if start > end:
            raise ValueError("start must not be after end")
        normalized = normalize_symbol(symbol)
        return self._repository.list_price_snapshots(normalized, from_unix(start), from_unix(end))


def init_price_history(app) -> PriceHistory:
    """Create the price history service and store it on the Flask app."""

    history = PriceHistory(app.extensions["crypto_repository"])
    app.extensions["price_history"] = history
    return history
