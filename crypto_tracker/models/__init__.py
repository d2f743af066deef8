"""SQLAlchemy ORM models for tracked currencies and their price history."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crypto_tracker.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Currency(Base):
    """A cryptocurrency symbol the ingestion job keeps prices for."""

    __tablename__ = "currencies"
    __table_args__ = (
        UniqueConstraint("symbol", name="uq_currencies_symbol"),
        Index("ix_currencies_created_at_id", "created_at", "id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    symbol: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    snapshots: Mapped[list["PriceSnapshot"]] = relationship(
        "PriceSnapshot",
        back_populates="currency",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Currency symbol={self.symbol}>"


class PriceSnapshot(Base):
    """USD price of a currency observed at a whole-second Unix timestamp."""

    __tablename__ = "price_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "currency_id",
            "timestamp",
            name="uq_price_snapshots_currency_timestamp",
        ),
        Index("ix_price_snapshots_currency_timestamp", "currency_id", "timestamp"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    currency_id: Mapped[str] = mapped_column(
        ForeignKey("currencies.id", ondelete="CASCADE"),
        nullable=False,
    )
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    currency: Mapped["Currency"] = relationship("Currency", back_populates="snapshots")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"<PriceSnapshot currency={self.currency_id} ts={self.timestamp} price={self.price}>"
        )
