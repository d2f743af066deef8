"""Background scheduler that periodically refreshes prices for every tracked currency."""

from __future__ import annotations

import atexit
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from flask import Flask

from crypto_tracker.database import session_scope
from crypto_tracker.domain import StoreError
from crypto_tracker.logging import ingestion_log_extra
from crypto_tracker.monitoring import timed_operation
from crypto_tracker.services.ingestion import IngestionReport, IngestionService
from crypto_tracker.utils.datetime import utc_now

logger = logging.getLogger(__name__)

SCHEDULER_EXT_KEY = "ingestion_scheduler"
INGESTION_STATE_KEY = "ingestion_state"
JOB_NAME = "ingest_prices"

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 2.0
DEFAULT_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class CycleOutcome:
    """Result of one scheduling cycle including its retries."""

    succeeded: bool
    attempts: int
    report: IngestionReport | None = None
    cancelled: bool = False


def run_cycle_with_retry(
    run_once: Callable[[threading.Event], IngestionReport],
    cancel: threading.Event,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
) -> CycleOutcome:
    """Run one ingestion pass, retrying when listing currencies fails.

    After failed attempt ``n`` the cycle waits ``n * backoff_seconds`` before
    the next attempt, so the delay grows linearly. The wait is taken on
    ``cancel`` and a set event ends the cycle immediately.
    """

    if max_attempts <= 0:
        raise ValueError("max_attempts must be a positive integer")

    for attempt in range(1, max_attempts + 1):
        if cancel.is_set():
            logger.info("Ingestion cycle cancelled before attempt %s", attempt)
            return CycleOutcome(succeeded=False, attempts=attempt - 1, cancelled=True)

        try:
            report = run_once(cancel)
        except StoreError as exc:
            logger.error(
                "Ingestion attempt %s/%s failed: %s",
                attempt,
                max_attempts,
                exc,
                extra=ingestion_log_extra(event="ingestion.attempt_failed", attempt=attempt, error=str(exc)),
            )
            if attempt == max_attempts:
                break
            delay = attempt * backoff_seconds
            if cancel.wait(delay):
                logger.info("Ingestion cancelled during backoff after attempt %s", attempt)
                return CycleOutcome(succeeded=False, attempts=attempt, cancelled=True)
            continue

        if report.cancelled:
            return CycleOutcome(succeeded=False, attempts=attempt, report=report, cancelled=True)
        return CycleOutcome(succeeded=True, attempts=attempt, report=report)

    logger.warning(
        "Ingestion gave up after %s attempts; waiting for the next cycle",
        max_attempts,
        extra=ingestion_log_extra(event="ingestion.gave_up", attempt=max_attempts),
    )
    return CycleOutcome(succeeded=False, attempts=max_attempts)


def ensure_ingestion_state(app: Flask) -> dict[str, Any]:
    """Ensure the ingestion state dict exists on app extensions."""
    state = app.extensions.setdefault(INGESTION_STATE_KEY, {})
    if not isinstance(state, dict):
        new_state: dict[str, Any] = {}
        app.extensions[INGESTION_STATE_KEY] = new_state
        return new_state
    return state


def run_ingestion_cycle(app: Flask, cancel: threading.Event | None = None) -> CycleOutcome:
    """Run a full cycle inside an app context and record its outcome on the app."""

    cancel = cancel or threading.Event()
    with app.app_context(), session_scope():
        service = cast(IngestionService | None, app.extensions.get("ingestion_service"))
        if service is None:
            raise RuntimeError("Ingestion service is not initialised")

        state = ensure_ingestion_state(app)
        state["last_started"] = utc_now()
        with timed_operation("ingestion.cycle", logger=logger) as timing:
            outcome = run_cycle_with_retry(
                service.run_once,
                cancel,
                max_attempts=int(app.config.get("INGESTION_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
                backoff_seconds=float(
                    app.config.get("INGESTION_BACKOFF_SECONDS", DEFAULT_BACKOFF_SECONDS)
                ),
            )
            timing["attempts"] = outcome.attempts
            timing["succeeded"] = outcome.succeeded

        _record_outcome(state, outcome)
    return outcome


def _record_outcome(state: dict[str, Any], outcome: CycleOutcome) -> None:
    now = utc_now()
    state["last_attempts"] = outcome.attempts
    if outcome.cancelled:
        state["last_cancelled"] = now
        return
    if outcome.succeeded and outcome.report is not None:
        state["last_success"] = now
        state["last_failure"] = None
        state["last_saved"] = outcome.report.saved
        state["last_skipped"] = outcome.report.skipped
    else:
        state["last_failure"] = now


class IngestionScheduler:
    """Runs ingestion cycles back to back with a fixed pause between them.

    The first cycle starts immediately. Each cycle schedules the next one
    ``interval_seconds`` after it finishes, so cycles never overlap. ``stop``
    sets the shared cancel event, which interrupts rate-limit and backoff
    waits, and shuts the underlying APScheduler down without waiting.
    """

    def __init__(
        self,
        app: Flask,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        timezone: str = "UTC",
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        self._app = app
        self._interval = timedelta(seconds=interval_seconds)
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone)
        self._cancel = threading.Event()

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel

    @property
    def running(self) -> bool:
        return bool(getattr(self._scheduler, "running", False)) and not self._cancel.is_set()

    def start(self) -> None:
        self._schedule(utc_now())
        self._scheduler.start()
        logger.info("Ingestion scheduler started with %ss interval", self._interval.total_seconds())

    def stop(self) -> None:
        if self._cancel.is_set():
            return
        self._cancel.set()
        if getattr(self._scheduler, "running", False):
            self._scheduler.shutdown(wait=False)
        logger.info("Ingestion scheduler stopped")

    def _schedule(self, run_date) -> None:
        self._scheduler.add_job(
            self._tick,
            trigger=DateTrigger(run_date=run_date),
            name=JOB_NAME,
            misfire_grace_time=None,
        )

    def _tick(self) -> None:
        if self._cancel.is_set():
            return
        try:
            run_ingestion_cycle(self._app, self._cancel)
        except Exception:
            logger.exception("Unexpected error during ingestion cycle")
        if self._cancel.is_set():
            logger.info("Ingestion scheduler terminated")
            return
        self._schedule(utc_now() + self._interval)


def init_scheduler(app: Flask) -> IngestionScheduler | None:
    """Start the ingestion scheduler if enabled and attach it to the app."""

    ensure_ingestion_state(app)

    if not app.config.get("SCHEDULER_ENABLED", True):
        logger.info("Scheduler disabled via configuration.")
        return None

    existing = app.extensions.get(SCHEDULER_EXT_KEY)
    if existing is not None:
        return existing

    scheduler = IngestionScheduler(
        app,
        interval_seconds=float(app.config.get("INGESTION_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS)),
        timezone=app.config.get("SCHEDULER_TIMEZONE", "UTC"),
    )
    scheduler.start()
    app.extensions[SCHEDULER_EXT_KEY] = scheduler
    atexit.register(scheduler.stop)
    return scheduler
