"""SQLAlchemy-backed implementation of the crypto repository."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import asc, delete, desc, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, scoped_session

from crypto_tracker import models
from crypto_tracker.database import get_session
from crypto_tracker.domain import (
    Currency,
    DuplicateCurrencyError,
    DuplicatePriceError,
    NotTrackedError,
    PriceSnapshot,
    StoreError,
)
from crypto_tracker.services.price_history import choose_nearest
from crypto_tracker.services.repository import CryptoRepository, validate_page
from crypto_tracker.utils.datetime import from_unix, to_unix, truncate_to_seconds

logger = logging.getLogger(__name__)


class SqlAlchemyCryptoRepository(CryptoRepository):
    """Stores currencies and snapshots through the thread-local scoped session."""

    def __init__(self, sessions: scoped_session | None = None) -> None:
        self._sessions = sessions or get_session()

    def add_currency(self, currency: Currency) -> None:
        session = self._sessions()
        session.add(
            models.Currency(
                id=currency.id,
                symbol=currency.symbol,
                created_at=currency.created_at,
                updated_at=currency.updated_at,
            )
        )
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            _raise_currency_integrity_error(exc, currency.symbol)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to add currency %s: %s", currency.symbol, exc)
            raise StoreError(f"Unable to add currency {currency.symbol}") from exc

    def remove_currency(self, symbol: str) -> None:
        session = self._sessions()
        try:
            result = session.execute(
                delete(models.Currency).where(models.Currency.symbol == symbol)
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(f"Unable to remove currency {symbol}") from exc

        if not result.rowcount:
            raise NotTrackedError(f"cryptocurrency '{symbol}' not tracked")

    def list_currencies(self, page_size: int, offset: int) -> list[Currency]:
        validate_page(page_size, offset)
        session = self._sessions()
        query = (
            select(models.Currency)
            .order_by(asc(models.Currency.created_at), asc(models.Currency.id))
            .offset(offset)
            .limit(page_size)
        )
        try:
            rows = session.scalars(query).all()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError("Unable to list currencies") from exc
        return [_currency_to_domain(row) for row in rows]

    def get_price_snapshot(self, symbol: str, at: datetime) -> PriceSnapshot:
        session = self._sessions()
        target = to_unix(truncate_to_seconds(at))
        try:
            currency_id = self._currency_id(session, symbol)
            Snapshot = models.PriceSnapshot

            exact = session.scalars(
                select(Snapshot)
                .where(Snapshot.currency_id == currency_id, Snapshot.timestamp == target)
                .limit(1)
            ).first()
            if exact is not None:
                return _snapshot_to_domain(exact)

            older = session.scalars(
                select(Snapshot)
                .where(Snapshot.currency_id == currency_id, Snapshot.timestamp < target)
                .order_by(desc(Snapshot.timestamp))
                .limit(1)
            ).first()
            newer = session.scalars(
                select(Snapshot)
                .where(Snapshot.currency_id == currency_id, Snapshot.timestamp > target)
                .order_by(asc(Snapshot.timestamp))
                .limit(1)
            ).first()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(f"Unable to look up price for {symbol}") from exc

        return choose_nearest(
            from_unix(target),
            _snapshot_to_domain(older) if older is not None else None,
            _snapshot_to_domain(newer) if newer is not None else None,
        )

    def save_price_snapshot(self, snapshot: PriceSnapshot) -> None:
        session = self._sessions()
        session.add(
            models.PriceSnapshot(
                id=snapshot.id,
                currency_id=snapshot.currency_id,
                timestamp=to_unix(snapshot.timestamp),
                price=snapshot.price,
                created_at=snapshot.created_at,
            )
        )
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            _raise_snapshot_integrity_error(exc, snapshot)
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError("Unable to save price snapshot") from exc

    def list_price_snapshots(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[PriceSnapshot]:
        session = self._sessions()
        Snapshot = models.PriceSnapshot
        try:
            currency_id = self._currency_id(session, symbol)
            rows = session.scalars(
                select(Snapshot)
                .where(
                    Snapshot.currency_id == currency_id,
                    Snapshot.timestamp.between(to_unix(start), to_unix(end)),
                )
                .order_by(asc(Snapshot.timestamp))
            ).all()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(f"Unable to list prices for {symbol}") from exc
        return [_snapshot_to_domain(row) for row in rows]

    @staticmethod
    def _currency_id(session: Session, symbol: str) -> str:
        currency_id = session.scalars(
            select(models.Currency.id).where(models.Currency.symbol == symbol)
        ).first()
        if currency_id is None:
            raise NotTrackedError(f"cryptocurrency '{symbol}' not tracked")
        return currency_id


def _currency_to_domain(row: models.Currency) -> Currency:
    return Currency(
        id=row.id,
        symbol=row.symbol,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _snapshot_to_domain(row: models.PriceSnapshot) -> PriceSnapshot:
    return PriceSnapshot(
        id=row.id,
        currency_id=row.currency_id,
        timestamp=from_unix(row.timestamp),
        price=row.price,
        created_at=row.created_at,
    )


def _raise_currency_integrity_error(exc: IntegrityError, symbol: str) -> None:
    lowered = str(getattr(exc, "orig", exc)).lower()
    if "symbol" in lowered:
        raise DuplicateCurrencyError(f"cryptocurrency '{symbol}' already exists") from exc
    raise StoreError(f"Unable to add currency {symbol}") from exc


def _raise_snapshot_integrity_error(exc: IntegrityError, snapshot: PriceSnapshot) -> None:
    lowered = str(getattr(exc, "orig", exc)).lower()
    if "uq_price_snapshots_currency_timestamp" in lowered or "price_snapshots.timestamp" in lowered:
        raise DuplicatePriceError(
            f"price already exists for {snapshot.timestamp.isoformat()}"
        ) from exc
    if "foreign key" in lowered:
        raise NotTrackedError("cryptocurrency no longer tracked") from exc
    raise StoreError("Unable to save price snapshot") from exc
