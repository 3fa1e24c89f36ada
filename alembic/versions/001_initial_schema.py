"""Initial schema: trades, volume_days.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Trades table
    op.create_table(
        "trades",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("instrument", sa.String(16), nullable=False),
        sa.Column("side", sa.String(8), nullable=False, server_default=""),

        # Quantities and money
        sa.Column("size", sa.Numeric(24, 8), nullable=True),
        sa.Column("contracts", sa.Numeric(24, 8), nullable=True),
        sa.Column("pnl", sa.Numeric(24, 8), nullable=True),
        sa.Column("fee", sa.Numeric(24, 8), nullable=True),
        sa.Column("is_profit", sa.Boolean(), server_default=sa.false()),
        sa.Column("net_r", sa.Numeric(24, 8), nullable=True),
        sa.Column("price_per_point", sa.Numeric(24, 8), nullable=True),

        # Prices and times
        sa.Column("open_price", sa.Numeric(24, 8), nullable=True),
        sa.Column("close_price", sa.Numeric(24, 8), nullable=True),
        sa.Column("open_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),

        # Broker identity
        sa.Column("source", sa.String(32), nullable=False, server_default="manual"),
        sa.Column("external_key", sa.String(256), nullable=True),
        sa.Column("open_order_id", sa.String(128), nullable=False, server_default=""),
        sa.Column("close_order_id", sa.String(128), nullable=False, server_default=""),

        # Statement extras
        sa.Column("pips", sa.Numeric(24, 8), nullable=True),
        sa.Column("drawdown", sa.Numeric(24, 8), nullable=True),
        sa.Column("drawdown_cash", sa.Numeric(24, 8), nullable=True),

        # Entry-quality metrics (vj_*)
        sa.Column("metrics", JSONB, nullable=True),

        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("owner_id", "external_key", name="uq_trades_owner_external_key"),
    )
    op.create_index("ix_trades_owner_open_order", "trades", ["owner_id", "open_order_id"])
    op.create_index("ix_trades_owner_instrument", "trades", ["owner_id", "instrument"])
    op.create_index("ix_trades_close_date", "trades", ["close_date"])

    # Volume days table
    op.create_table(
        "volume_days",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("instrument", sa.String(16), nullable=False),
        sa.Column("day", sa.String(10), nullable=False),
        sa.Column("tick_size", sa.Numeric(24, 8), nullable=False),
        sa.Column("source", sa.String(32), nullable=False, server_default="volfix"),
        sa.Column("rows", JSONB, nullable=False),
        sa.Column("profile", JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("owner_id", "instrument", "day", name="uq_volume_days_scope"),
    )
    op.create_index("ix_volume_days_owner_instrument", "volume_days", ["owner_id", "instrument"])


def downgrade() -> None:
    op.drop_table("volume_days")
    op.drop_table("trades")
