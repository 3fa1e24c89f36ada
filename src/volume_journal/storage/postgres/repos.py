"""Repository pattern for async database operations.

Each repository encapsulates query logic for one table and implements
the matching store Protocol from :mod:`volume_journal.core.interfaces`.
All repositories take an open :class:`AsyncSession`; see
:class:`volume_journal.storage.postgres.connection.JournalDatabase`
for the session and commit handling.

Database errors are re-raised as :class:`StoreUnavailableError` (or
:class:`PersistenceError` for constraint violations) so callers handle
one exception family regardless of the backend.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterator

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from volume_journal.core.errors import PersistenceError, StoreUnavailableError
from volume_journal.core.models import PriceVolumeRow, ProfileSummary, StoredTrade, VolumeDay

from .models import TradeRecord, VolumeDayRecord

logger = logging.getLogger(__name__)

# Document keys stored in their own column; anything else goes to ``metrics``.
_TRADE_COLUMNS = frozenset(
    c.key for c in TradeRecord.__table__.columns
    if c.key not in ("id", "owner_id", "metrics", "created_at", "updated_at")
)


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _jsonable(value: Any) -> Any:
    """Make a metric value storable in a JSON column."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def _utc(ts: datetime | None) -> datetime | None:
    # SQLite hands timestamps back without tzinfo.
    if ts is None or ts.tzinfo is not None:
        return ts
    return ts.replace(tzinfo=timezone.utc)


def _parse_id(trade_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(trade_id))
    except ValueError:
        return None


def _record_to_doc(record: TradeRecord) -> dict[str, Any]:
    """Convert a :class:`TradeRecord` to a plain trade document."""
    doc: dict[str, Any] = {
        key: getattr(record, key) for key in _TRADE_COLUMNS
    }
    for key in ("open_date", "close_date"):
        doc[key] = _utc(doc[key])
    doc.update(record.metrics or {})
    doc["id"] = str(record.id)
    doc["owner_id"] = record.owner_id
    doc["created_at"] = _utc(record.created_at)
    doc["updated_at"] = _utc(record.updated_at)
    return doc


def _apply_fields(record: TradeRecord, fields: dict[str, Any]) -> None:
    metrics = dict(record.metrics or {})
    for key, value in fields.items():
        if key in _TRADE_COLUMNS:
            setattr(record, key, value)
        elif key not in ("id", "owner_id"):
            metrics[key] = _jsonable(value)
    # Reassign so the JSON column is flagged dirty.
    record.metrics = metrics or None


def _row_to_json(row: PriceVolumeRow) -> dict[str, Any]:
    return {
        "price": str(row.price),
        "volume": row.volume,
        "delta_aggregate": row.delta_aggregate,
    }


def _record_to_day(record: VolumeDayRecord) -> VolumeDay:
    return VolumeDay(
        owner_id=record.owner_id,
        instrument=record.instrument,
        day=record.day,
        tick_size=record.tick_size,
        source=record.source,
        rows=[PriceVolumeRow(**r) for r in record.rows or []],
        profile=ProfileSummary(**(record.profile or {})),
        updated_at=_utc(record.updated_at),
    )


# ---------------------------------------------------------------------------
# TradeRepo
# ---------------------------------------------------------------------------

class TradeRepo:
    """Repository for :class:`TradeRecord`, implementing ``ITradeStore``.

    Args:
        session: Open async session.
        commit_each: Commit after every write instead of leaving the
            transaction to the session owner.  Import runs use this so
            rows written before a failure stay written.
    """

    def __init__(self, session: AsyncSession, *, commit_each: bool = False) -> None:
        self._session = session
        self._commit_each = commit_each

    @asynccontextmanager
    async def _guard(self, op: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as exc:
            await self._session.rollback()
            raise PersistenceError(f"{op}: constraint violation ({exc.orig})") from exc
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Trade store %s failed: %s", op, exc)
            raise StoreUnavailableError(f"{op}: {exc}") from exc

    async def _written(self) -> None:
        await self._session.flush()
        if self._commit_each:
            await self._session.commit()

    async def find_existing(
        self,
        owner_id: str,
        external_key: str,
        legacy_key: str | None = None,
        open_order_id: str | None = None,
    ) -> StoredTrade | None:
        """Find a trade by current key, legacy pair key or open order id."""
        matches = [TradeRecord.external_key == external_key]
        if legacy_key:
            matches.append(TradeRecord.external_key == legacy_key)
        if open_order_id:
            matches.append(TradeRecord.open_order_id == open_order_id)

        stmt = (
            select(TradeRecord)
            .where(TradeRecord.owner_id == owner_id, or_(*matches))
            .order_by(TradeRecord.created_at)
            .limit(1)
        )
        async with self._guard("find_existing"):
            result = await self._session.execute(stmt)
            record = result.scalar_one_or_none()
        if record is None:
            return None
        return StoredTrade(
            id=str(record.id),
            external_key=record.external_key,
            open_order_id=record.open_order_id,
            close_order_id=record.close_order_id,
        )

    async def insert(self, owner_id: str, document: dict[str, Any]) -> str:
        """Insert a trade document and return its id."""
        trade_id = uuid.uuid4()
        record = TradeRecord(
            id=trade_id, owner_id=owner_id, instrument=document.get("instrument", ""),
        )
        _apply_fields(record, document)
        if document.get("close_date") is not None:
            record.created_at = document["close_date"]
        async with self._guard("insert"):
            self._session.add(record)
            await self._written()
        logger.debug("Inserted trade %s (key=%s)", trade_id, document.get("external_key"))
        return str(trade_id)

    async def set_fields(self, owner_id: str, trade_id: str, fields: dict[str, Any]) -> bool:
        """Field-level update; ``False`` when the trade does not exist."""
        tid = _parse_id(trade_id)
        if tid is None:
            return False
        stmt = select(TradeRecord).where(
            TradeRecord.id == tid, TradeRecord.owner_id == owner_id,
        )
        async with self._guard("set_fields"):
            result = await self._session.execute(stmt)
            record = result.scalar_one_or_none()
            if record is None:
                return False
            _apply_fields(record, fields)
            await self._written()
        logger.debug("Updated trade %s: %s", trade_id, ", ".join(sorted(fields)))
        return True

    async def get(self, owner_id: str, trade_id: str) -> dict[str, Any] | None:
        tid = _parse_id(trade_id)
        if tid is None:
            return None
        stmt = select(TradeRecord).where(
            TradeRecord.id == tid, TradeRecord.owner_id == owner_id,
        )
        async with self._guard("get"):
            result = await self._session.execute(stmt)
            record = result.scalar_one_or_none()
        return _record_to_doc(record) if record is not None else None

    async def list_trades(self, owner_id: str, instrument: str | None = None) -> list[dict[str, Any]]:
        """All trades of an owner, oldest first."""
        stmt = (
            select(TradeRecord)
            .where(TradeRecord.owner_id == owner_id)
            .order_by(TradeRecord.created_at)
        )
        if instrument is not None:
            stmt = stmt.where(TradeRecord.instrument == instrument.upper())
        async with self._guard("list_trades"):
            result = await self._session.execute(stmt)
            records = result.scalars().all()
        return [_record_to_doc(r) for r in records]


# ---------------------------------------------------------------------------
# VolumeDayRepo
# ---------------------------------------------------------------------------

class VolumeDayRepo:
    """Repository for :class:`VolumeDayRecord`, implementing ``IVolumeDayStore``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _find(self, owner_id: str, instrument: str, day: str) -> VolumeDayRecord | None:
        stmt = select(VolumeDayRecord).where(
            VolumeDayRecord.owner_id == owner_id,
            VolumeDayRecord.instrument == instrument,
            VolumeDayRecord.day == day,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def save_day(self, day: VolumeDay) -> VolumeDay:
        """Replace the rows and profile of one (owner, instrument, day)."""
        rows = [_row_to_json(r) for r in day.rows]
        profile = day.profile.model_dump(mode="json")
        try:
            record = await self._find(day.owner_id, day.instrument, day.day)
            if record is None:
                record = VolumeDayRecord(
                    owner_id=day.owner_id,
                    instrument=day.instrument,
                    day=day.day,
                    tick_size=day.tick_size,
                    source=day.source,
                    rows=rows,
                    profile=profile,
                )
                self._session.add(record)
            else:
                record.tick_size = day.tick_size
                record.source = day.source
                record.rows = rows
                record.profile = profile
                record.updated_at = datetime.now(timezone.utc)
            await self._session.flush()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise StoreUnavailableError(f"save_day: {exc}") from exc

        logger.debug("Saved volume day %s %s (%d levels)", day.instrument, day.day, len(rows))
        return _record_to_day(record)

    async def get_day(self, owner_id: str, instrument: str, day: str) -> VolumeDay | None:
        try:
            record = await self._find(owner_id, instrument, day)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"get_day: {exc}") from exc
        return _record_to_day(record) if record is not None else None

    async def list_days(self, owner_id: str, instrument: str) -> list[VolumeDay]:
        """All stored days of one instrument, oldest first."""
        stmt = (
            select(VolumeDayRecord)
            .where(
                VolumeDayRecord.owner_id == owner_id,
                VolumeDayRecord.instrument == instrument,
            )
            .order_by(VolumeDayRecord.day)
        )
        try:
            result = await self._session.execute(stmt)
            records = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"list_days: {exc}") from exc
        return [_record_to_day(r) for r in records]
