"""Service layer modules."""

from .currency_registry import DEFAULT_PAGE_SIZE, CurrencyRegistry, init_registry
from .ingestion import IngestionReport, IngestionService, init_ingestion
from .price_history import PriceHistory, choose_nearest, init_price_history
from .repository import CryptoRepository, validate_page
from .scheduler import (
    CycleOutcome,
    IngestionScheduler,
    ensure_ingestion_state,
    init_scheduler,
    run_cycle_with_retry,
    run_ingestion_cycle,
)
from .sql_repository import SqlAlchemyCryptoRepository

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "CryptoRepository",
    "CurrencyRegistry",
    "CycleOutcome",
    "IngestionReport",
    "IngestionScheduler",
    "IngestionService",
    "PriceHistory",
    "SqlAlchemyCryptoRepository",
    "choose_nearest",
    "ensure_ingestion_state",
    "init_ingestion",
    "init_price_history",
    "init_registry",
    "init_scheduler",
    "run_cycle_with_retry",
    "run_ingestion_cycle",
    "validate_page",
]
