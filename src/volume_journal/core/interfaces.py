"""Protocol interfaces for the volume journal.

Store boundaries are defined here as Protocol classes so the import
pipeline and the metric writer work unchanged against the in-memory
stores (tests, previews) and the PostgreSQL repositories.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import StoredTrade, VolumeDay


# ---------------------------------------------------------------------------
# Trade store
# ---------------------------------------------------------------------------

@runtime_checkable
class ITradeStore(Protocol):
    """Persisted trades, scoped by owner.

    Implementations raise :class:`~volume_journal.core.errors.PersistenceError`
    (or a subclass) when the backing store fails.
    """

    async def find_existing(
        self,
        owner_id: str,
        external_key: str,
        legacy_key: str | None = None,
        open_order_id: str | None = None,
    ) -> StoredTrade | None: ...

    async def insert(self, owner_id: str, document: dict[str, Any]) -> str: ...

    async def set_fields(
        self, owner_id: str, trade_id: str, fields: dict[str, Any],
    ) -> bool: ...

    async def get(self, owner_id: str, trade_id: str) -> dict[str, Any] | None: ...

    async def list_trades(
        self, owner_id: str, instrument: str | None = None,
    ) -> list[dict[str, Any]]: ...


# ---------------------------------------------------------------------------
# Volume-day store
# ---------------------------------------------------------------------------

@runtime_checkable
class IVolumeDayStore(Protocol):
    """Price/volume rows keyed uniquely on (owner, instrument, day)."""

    async def save_day(self, day: VolumeDay) -> VolumeDay: ...

    async def get_day(
        self, owner_id: str, instrument: str, day: str,
    ) -> VolumeDay | None: ...

    async def list_days(self, owner_id: str, instrument: str) -> list[VolumeDay]: ...
