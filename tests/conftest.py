"""Shared pytest fixtures."""

from __future__ import annotations

import json
import os
import shutil
import sys
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import delete

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# config.py reads the environment at import time.
_DB_DIR = Path(tempfile.mkdtemp(prefix="crypto-tracker-tests-"))
DATABASE_URL = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = DATABASE_URL
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["PRICE_SOURCE"] = "mock"

from crypto_tracker import create_app  # noqa: E402
from crypto_tracker import models  # noqa: E402
from crypto_tracker.database import SessionLocal, get_engine  # noqa: E402


@pytest.fixture(scope="session")
def app() -> Iterator:
    """Session-wide Flask application configured with a temporary database."""

    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
    command.upgrade(alembic_cfg, "head")

    flask_app = create_app("testing")

    yield flask_app

    engine = get_engine()
    SessionLocal.remove()
    engine.dispose()
    command.downgrade(alembic_cfg, "base")
    shutil.rmtree(_DB_DIR, ignore_errors=True)


def _wipe_tables() -> None:
    session = SessionLocal()
    try:
        session.execute(delete(models.PriceSnapshot))
        session.execute(delete(models.Currency))
        session.commit()
    finally:
        SessionLocal.remove()


@pytest.fixture()
def clean_db(app) -> Iterator[None]:
    """Start and finish each test with empty tables."""

    _wipe_tables()
    yield
    _wipe_tables()


@pytest.fixture()
def client(app, clean_db):
    """Provide a Flask test client."""

    with app.test_client() as client:
        yield client


@pytest.fixture()
def db_session(app, clean_db) -> Iterator:
    """Provide the thread's session, rolled back and released after the test."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        SessionLocal.remove()


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    """Return the path to bundled JSON fixtures."""

    return ROOT_DIR / "tests" / "fixtures"


@pytest.fixture()
def load_json_fixture(fixtures_dir: Path) -> Callable[[str], object]:
    """Load a JSON fixture by filename."""

    def _loader(filename: str) -> object:
        path = fixtures_dir / filename
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    return _loader
