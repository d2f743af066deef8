from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest
from flask import Flask

from crypto_tracker.domain import StoreError
from crypto_tracker.services.currency_registry import CurrencyRegistry
from crypto_tracker.services.ingestion import IngestionReport, IngestionService
from crypto_tracker.services.scheduler import (
    INGESTION_STATE_KEY,
    SCHEDULER_EXT_KEY,
    IngestionScheduler,
    init_scheduler,
    run_cycle_with_retry,
    run_ingestion_cycle,
)
from tests.fakes import FIXED_NOW, InMemoryCryptoRepository, RecordingEvent, StaticPriceSource, make_currency

pytestmark = pytest.mark.scheduler


def _flaky(failures: int):
    calls = {"count": 0}

    def run_once(cancel):
        calls["count"] += 1
        if calls["count"] <= failures:
            raise StoreError("listing failed")
        return IngestionReport(saved=1)

    return run_once, calls


def test_retry_succeeds_on_third_attempt_with_increasing_backoff():
    run_once, calls = _flaky(2)
    cancel = RecordingEvent()

    outcome = run_cycle_with_retry(run_once, cancel, max_attempts=3, backoff_seconds=2)

    assert outcome.succeeded is True
    assert outcome.attempts == 3
    assert calls["count"] == 3
    assert cancel.waits == [2.0, 4.0]
    assert cancel.waits[0] < cancel.waits[1]


def test_retry_gives_up_after_max_attempts_without_trailing_wait():
    run_once, calls = _flaky(10)
    cancel = RecordingEvent()

    outcome = run_cycle_with_retry(run_once, cancel, max_attempts=3, backoff_seconds=2)

    assert outcome.succeeded is False
    assert outcome.cancelled is False
    assert outcome.attempts == 3
    assert calls["count"] == 3
    assert cancel.waits == [2.0, 4.0]


def test_cancel_during_backoff_ends_cycle():
    run_once, calls = _flaky(10)
    cancel = RecordingEvent(cancel_after_waits=1)

    outcome = run_cycle_with_retry(run_once, cancel, max_attempts=3, backoff_seconds=2)

    assert outcome.cancelled is True
    assert outcome.attempts == 1
    assert calls["count"] == 1


def test_cancel_before_first_attempt_skips_work():
    run_once, calls = _flaky(0)
    cancel = threading.Event()
    cancel.set()

    outcome = run_cycle_with_retry(run_once, cancel)

    assert outcome.cancelled is True
    assert outcome.attempts == 0
    assert calls["count"] == 0


def test_max_attempts_must_be_positive():
    run_once, _ = _flaky(0)
    with pytest.raises(ValueError):
        run_cycle_with_retry(run_once, threading.Event(), max_attempts=0)


def _ingestion_app(*, list_failures: int = 0) -> tuple[Flask, InMemoryCryptoRepository]:
    repository = InMemoryCryptoRepository()
    repository.add_currency(make_currency("BTC", FIXED_NOW))
    repository.list_failures = list_failures
    source = StaticPriceSource({"BTC": 65000.0})
    app = Flask(__name__)
    app.config.update(INGESTION_MAX_ATTEMPTS=3, INGESTION_BACKOFF_SECONDS=0)
    app.extensions["ingestion_service"] = IngestionService(
        CurrencyRegistry(repository, source), repository, source
    )
    return app, repository


def test_run_ingestion_cycle_records_success_state():
    app, repository = _ingestion_app(list_failures=1)

    outcome = run_ingestion_cycle(app, RecordingEvent())

    assert outcome.succeeded is True
    state = app.extensions[INGESTION_STATE_KEY]
    assert state["last_attempts"] == 2
    assert state["last_saved"] == 1
    assert state["last_skipped"] == 0
    assert state["last_success"] is not None
    assert state["last_failure"] is None
    assert repository.list_calls == 3


def test_run_ingestion_cycle_records_failure_state():
    app, _ = _ingestion_app(list_failures=5)

    outcome = run_ingestion_cycle(app, RecordingEvent())

    assert outcome.succeeded is False
    state = app.extensions[INGESTION_STATE_KEY]
    assert state["last_failure"] is not None
    assert state["last_attempts"] == 3
    assert "last_success" not in state


def test_run_ingestion_cycle_requires_service():
    with pytest.raises(RuntimeError):
        run_ingestion_cycle(Flask(__name__))


def test_scheduler_start_schedules_immediate_job():
    backend = MagicMock()
    backend.running = False
    scheduler = IngestionScheduler(Flask(__name__), interval_seconds=60, scheduler=backend)

    scheduler.start()

    backend.add_job.assert_called_once()
    backend.start.assert_called_once()


def test_tick_runs_cycle_and_schedules_next(monkeypatch):
    backend = MagicMock()
    app = Flask(__name__)
    scheduler = IngestionScheduler(app, interval_seconds=60, scheduler=backend)
    runs = []
    monkeypatch.setattr(
        "crypto_tracker.services.scheduler.run_ingestion_cycle",
        lambda flask_app, cancel: runs.append((flask_app, cancel)),
    )

    scheduler._tick()

    assert runs == [(app, scheduler.cancel_event)]
    backend.add_job.assert_called_once()


def test_tick_survives_unexpected_errors_and_reschedules(monkeypatch):
    backend = MagicMock()
    scheduler = IngestionScheduler(Flask(__name__), scheduler=backend)

    def boom(_app, _cancel):
        raise RuntimeError("boom")

    monkeypatch.setattr("crypto_tracker.services.scheduler.run_ingestion_cycle", boom)

    scheduler._tick()

    backend.add_job.assert_called_once()


def test_stop_cancels_and_prevents_rescheduling(monkeypatch):
    backend = MagicMock()
    backend.running = True
    scheduler = IngestionScheduler(Flask(__name__), scheduler=backend)
    monkeypatch.setattr(
        "crypto_tracker.services.scheduler.run_ingestion_cycle",
        lambda *_: pytest.fail("cycle must not run after stop"),
    )

    scheduler.stop()
    scheduler._tick()

    assert scheduler.cancel_event.is_set()
    backend.shutdown.assert_called_once_with(wait=False)
    backend.add_job.assert_not_called()
    assert scheduler.running is False


def test_init_scheduler_respects_disabled_flag():
    app = Flask(__name__)
    app.config["SCHEDULER_ENABLED"] = False

    assert init_scheduler(app) is None
    assert SCHEDULER_EXT_KEY not in app.extensions
    assert app.extensions[INGESTION_STATE_KEY] == {}
