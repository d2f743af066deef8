"""SQLAlchemy database helpers and session management."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, scoped_session, sessionmaker


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


# Thread-local scoped session; request handlers and the ingestion thread each get their own.
SessionLocal = scoped_session(sessionmaker())

_engine: Optional[Engine] = None
_engine_uri: Optional[str] = None


def init_app(app: Any) -> None:
    """Configure SQLAlchemy engine and session for the Flask application."""

    global _engine, _engine_uri

    database_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if _engine is None or _engine_uri != database_uri:
        if _engine is not None:
            SessionLocal.remove()
            _engine.dispose()
        _engine = _build_engine(database_uri)
        _engine_uri = database_uri
        SessionLocal.configure(bind=_engine, autoflush=False, expire_on_commit=False)

    @app.teardown_appcontext
    def shutdown_session(_: Optional[BaseException] = None) -> None:
        SessionLocal.remove()

    app.extensions["sqlalchemy_engine"] = _engine
    app.extensions["sqlalchemy_session_factory"] = SessionLocal


def _build_engine(database_uri: str) -> Engine:
    if not database_uri.startswith("sqlite"):
        return create_engine(database_uri, future=True, pool_pre_ping=True)

    engine = create_engine(
        database_uri,
        future=True,
        connect_args={"check_same_thread": False},
    )

    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection.
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def get_engine() -> Engine:
    """Return the active SQLAlchemy engine; raise if not yet initialized."""

    if _engine is None:
        raise RuntimeError("Database engine has not been initialized. Call init_app first.")
    return _engine


def get_session() -> scoped_session:
    """Expose the configured session factory."""

    return SessionLocal


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield the thread's session and release it afterwards.

    Used by background work that runs outside the request teardown cycle.
    """

    session = SessionLocal()
    try:
        yield session
    finally:
        SessionLocal.remove()
