"""Fetch-and-persist pass over every tracked currency."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from crypto_tracker.domain import Currency, DuplicatePriceError, TrackerError, new_price_snapshot
from crypto_tracker.logging import ingestion_log_extra
from crypto_tracker.providers import BasePriceSource, ProviderError
from crypto_tracker.services.currency_registry import DEFAULT_PAGE_SIZE, CurrencyRegistry
from crypto_tracker.services.repository import CryptoRepository

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    """Outcome of one pass; ``failures`` maps symbols to the error code that skipped them."""

    saved: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def skipped(self) -> int:
        return len(self.failures)


class IngestionService:
    """Fetches a fresh price for each tracked currency and appends a snapshot.

    Currencies are processed one at a time in page order. A failure for one
    symbol is logged and skipped; only a failure to list currencies escapes
    ``run_once``.
    """

    def __init__(
        self,
        registry: CurrencyRegistry,
        repository: CryptoRepository,
        source: BasePriceSource,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self._registry = registry
        self._repository = repository
        self._source = source
        self._page_size = page_size

    def run_once(self, cancel: threading.Event | None = None) -> IngestionReport:
        """Run one pass over all tracked currencies.

        Raises:
            StoreError: If a page of currencies could not be listed.
        """

        report = IngestionReport()
        for page in self._registry.iter_pages(self._page_size):
            for currency in page:
                if cancel is not None and cancel.is_set():
                    logger.info("Ingestion pass cancelled before %s", currency.symbol)
                    report.cancelled = True
                    return report
                self._ingest(currency, report, cancel)

        logger.info(
            "Ingestion pass finished: %s saved, %s skipped",
            report.saved,
            report.skipped,
            extra=ingestion_log_extra(
                event="ingestion.pass", saved=report.saved, skipped=report.skipped
            ),
        )
        return report

    def _ingest(
        self,
        currency: Currency,
        report: IngestionReport,
        cancel: threading.Event | None,
    ) -> None:
        symbol = currency.symbol
        try:
            point = self._source.fetch_price(symbol, cancel)
        except ProviderError as exc:
            logger.error(
                "Fetch price failed for %s: %s",
                symbol,
                exc,
                extra=ingestion_log_extra(event="ingestion.fetch_failed", symbol=symbol, error=str(exc)),
            )
            report.failures[symbol] = "fetch_failed"
            return

        try:
            snapshot = new_price_snapshot(currency.id, point.timestamp, point.price)
            self._repository.save_price_snapshot(snapshot)
        except DuplicatePriceError:
            logger.info("Snapshot for %s at %s already stored", symbol, point.timestamp.isoformat())
            report.failures[symbol] = DuplicatePriceError.code
            return
        except TrackerError as exc:
            logger.error(
                "Could not store price for %s: %s",
                symbol,
                exc,
                extra=ingestion_log_extra(event="ingestion.store_failed", symbol=symbol, error=exc.code),
            )
            report.failures[symbol] = exc.code
            return

        report.saved += 1
        logger.debug("Saved %s snapshot %s at %s", symbol, snapshot.price, snapshot.timestamp.isoformat())


def init_ingestion(app) -> IngestionService:
    """Wire the ingestion service from the app's registry, repository and source."""

    service = IngestionService(
        registry=app.extensions["currency_registry"],
        repository=app.extensions["crypto_repository"],
        source=app.extensions["price_source"],
        page_size=int(app.config.get("INGESTION_PAGE_SIZE", DEFAULT_PAGE_SIZE)),
    )
    app.extensions["ingestion_service"] = service
    return service
