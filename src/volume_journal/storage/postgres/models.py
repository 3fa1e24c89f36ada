"""SQLAlchemy ORM models for the trade journal database.

All tables use UUID primary keys and UTC timestamps.  Flexible payloads
(volume-day rows, profile summaries, stored entry metrics) live in JSON
columns, JSONB on PostgreSQL.

Uniqueness:
    trades       (owner_id, external_key)
    volume_days  (owner_id, instrument, day)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_uuid() -> uuid.UUID:
    return uuid.uuid4()


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# TradeRecord
# ---------------------------------------------------------------------------

class TradeRecord(Base):
    """One round-trip trade, imported from a broker statement or entered by hand.

    ``external_key`` is the broker open-order id.  Rows imported under the
    older scheme carry ``"<open>|<close>"`` until an update migrates them.
    Entry-quality metrics (``vj_*``) are stored in ``metrics``.
    """

    __tablename__ = "trades"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=_new_uuid,
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    instrument: Mapped[str] = mapped_column(String(16), nullable=False)
    side: Mapped[str] = mapped_column(String(8), nullable=False, default="")
    size: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    contracts: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    pnl: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    fee: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    open_price: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    close_price: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    open_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    close_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_profit: Mapped[bool] = mapped_column(Boolean, default=False)
    net_r: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    price_per_point: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    external_key: Mapped[str | None] = mapped_column(String(256), nullable=True)
    open_order_id: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    close_order_id: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    pips: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    drawdown: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    drawdown_cash: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    metrics: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "external_key", name="uq_trades_owner_external_key"),
        Index("ix_trades_owner_open_order", "owner_id", "open_order_id"),
        Index("ix_trades_owner_instrument", "owner_id", "instrument"),
        Index("ix_trades_close_date", "close_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<TradeRecord(id={self.id}, instrument={self.instrument!r}, "
            f"side={self.side!r}, external_key={self.external_key!r})>"
        )


# ---------------------------------------------------------------------------
# VolumeDayRecord
# ---------------------------------------------------------------------------

class VolumeDayRecord(Base):
    """Merged price/volume rows and profile summary for one trading day."""

    __tablename__ = "volume_days"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=_new_uuid,
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    instrument: Mapped[str] = mapped_column(String(16), nullable=False)
    day: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    tick_size: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="volfix")
    rows: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    profile: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "instrument", "day", name="uq_volume_days_scope"),
        Index("ix_volume_days_owner_instrument", "owner_id", "instrument"),
    )

    def __repr__(self) -> str:
        return (
            f"<VolumeDayRecord(instrument={self.instrument!r}, day={self.day!r}, "
            f"levels={len(self.rows or [])})>"
        )
