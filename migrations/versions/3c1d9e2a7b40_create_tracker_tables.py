"""create tracker tables

Revision ID: 3c1d9e2a7b40
Revises:
Create Date: 2026-10-16 09:12:41.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d9e2a7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "currencies",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("symbol", sa.String(length=10), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("symbol", name="uq_currencies_symbol"),
    )
    op.create_index("ix_currencies_created_at_id", "currencies", ["created_at", "id"])

    op.create_table(
        "price_snapshots",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("currency_id", sa.String(length=36), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["currency_id"], ["currencies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "currency_id", "timestamp", name="uq_price_snapshots_currency_timestamp"
        ),
    )
    op.create_index(
        "ix_price_snapshots_currency_timestamp",
        "price_snapshots",
        ["currency_id", "timestamp"],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_price_snapshots_currency_timestamp", table_name="price_snapshots")
    op.drop_table("price_snapshots")
    op.drop_index("ix_currencies_created_at_id", table_name="currencies")
    op.drop_table("currencies")
