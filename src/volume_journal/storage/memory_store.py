"""In-memory trade and volume-day stores.

Used by tests, the CLI ``--memory`` mode and dry previews.  Both stores
can be switched into a failing state to exercise outage handling.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from volume_journal.core.errors import PersistenceError, StoreUnavailableError
from volume_journal.core.models import StoredTrade, VolumeDay

logger = logging.getLogger(__name__)


class _FailureSwitch:
    """Fail every call, or every call after ``fail_after`` successful ones."""

    def __init__(self) -> None:
        self.fail = False
        self.fail_after: int | None = None
        self.calls = 0

    def check(self, op: str) -> None:
        self.calls += 1
        if self.fail or (self.fail_after is not None and self.calls > self.fail_after):
            raise StoreUnavailableError(f"store unavailable during {op}")


class InMemoryTradeStore:
    """Trade documents keyed by owner and id.

    Usage::

        store = InMemoryTradeStore()
        tid = await store.insert("u1", {"external_key": "A1", ...})
        store.fail_after = 3   # simulate an outage mid-run
    """

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, dict[str, Any]]] = {}
        self._switch = _FailureSwitch()
        self.inserts = 0
        self.updates = 0

    # -- failure simulation --------------------------------------------

    @property
    def fail(self) -> bool:
        return self._switch.fail

    @fail.setter
    def fail(self, value: bool) -> None:
        self._switch.fail = value

    @property
    def fail_after(self) -> int | None:
        return self._switch.fail_after

    @fail_after.setter
    def fail_after(self, value: int | None) -> None:
        self._switch.fail_after = value
        self._switch.calls = 0

    # -- ITradeStore -----------------------------------------------------

    async def find_existing(
        self,
        owner_id: str,
        external_key: str,
        legacy_key: str | None = None,
        open_order_id: str | None = None,
    ) -> StoredTrade | None:
        self._switch.check("find_existing")
        for doc in self._docs.get(owner_id, {}).values():
            key = doc.get("external_key")
            if (
                key == external_key
                or (legacy_key is not None and key == legacy_key)
                or (open_order_id and doc.get("open_order_id") == open_order_id)
            ):
                return StoredTrade(
                    id=doc["id"],
                    external_key=key,
                    open_order_id=doc.get("open_order_id") or "",
                    close_order_id=doc.get("close_order_id") or "",
                )
        return None

    async def insert(self, owner_id: str, document: dict[str, Any]) -> str:
        self._switch.check("insert")
        docs = self._docs.setdefault(owner_id, {})
        key = document.get("external_key")
        if key is not None and any(d.get("external_key") == key for d in docs.values()):
            raise PersistenceError(f"duplicate external key {key!r} for owner {owner_id}")

        trade_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        docs[trade_id] = {
            **copy.deepcopy(document),
            "id": trade_id,
            "owner_id": owner_id,
            "created_at": document.get("close_date") or now,
            "updated_at": now,
        }
        self.inserts += 1
        logger.debug("Inserted trade %s for %s", trade_id, owner_id)
        return trade_id

    async def set_fields(self, owner_id: str, trade_id: str, fields: dict[str, Any]) -> bool:
        self._switch.check("set_fields")
        doc = self._docs.get(owner_id, {}).get(trade_id)
        if doc is None:
            return False
        doc.update(copy.deepcopy(fields))
        doc["updated_at"] = datetime.now(timezone.utc)
        self.updates += 1
        return True

    async def get(self, owner_id: str, trade_id: str) -> dict[str, Any] | None:
        self._switch.check("get")
        doc = self._docs.get(owner_id, {}).get(trade_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def list_trades(self, owner_id: str, instrument: str | None = None) -> list[dict[str, Any]]:
        self._switch.check("list_trades")
        docs = [
            copy.deepcopy(d)
            for d in self._docs.get(owner_id, {}).values()
            if instrument is None or str(d.get("instrument", "")).upper() == instrument.upper()
        ]
        docs.sort(key=lambda d: d["created_at"])
        return docs

    def __len__(self) -> int:
        return sum(len(d) for d in self._docs.values())


class InMemoryVolumeDayStore:
    """Volume days keyed uniquely by (owner, instrument, day)."""

    def __init__(self) -> None:
        self._days: dict[tuple[str, str, str], VolumeDay] = {}
        self._switch = _FailureSwitch()

    @property
    def fail(self) -> bool:
        return self._switch.fail

    @fail.setter
    def fail(self, value: bool) -> None:
        self._switch.fail = value

    async def save_day(self, day: VolumeDay) -> VolumeDay:
        self._switch.check("save_day")
        stored = day.model_copy(
            deep=True, update={"updated_at": datetime.now(timezone.utc)},
        )
        self._days[(day.owner_id, day.instrument, day.day)] = stored
        return stored.model_copy(deep=True)

    async def get_day(self, owner_id: str, instrument: str, day: str) -> VolumeDay | None:
        self._switch.check("get_day")
        found = self._days.get((owner_id, instrument, day))
        return found.model_copy(deep=True) if found is not None else None

    async def list_days(self, owner_id: str, instrument: str) -> list[VolumeDay]:
        self._switch.check("list_days")
        return [
            v.model_copy(deep=True)
            for (owner, instr, _), v in sorted(self._days.items(), key=lambda kv: kv[0][2])
            if owner == owner_id and instr == instrument
        ]
