"""Shared fixtures for the volume-journal test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from volume_journal.core.enums import TradeSide
from volume_journal.core.models import ImportOptions, PriceVolumeRow, Trade
from volume_journal.storage.memory_store import InMemoryTradeStore, InMemoryVolumeDayStore


# ---------------------------------------------------------------------------
# Volume rows
# ---------------------------------------------------------------------------

# price, volume, delta.  POC 101.00, value area [100.75, 101.50].
SESSION_LEVELS = [
    ("100.00", 10, -50),
    ("100.25", 20, -8),
    ("100.50", 40, 10),
    ("100.75", 80, 20),
    ("101.00", 150, 30),
    ("101.25", 90, -15),
    ("101.50", 50, 5),
    ("101.75", 15, 60),
    ("102.00", 5, -2),
]


def make_rows(levels, timestamp: datetime | None = None) -> list[PriceVolumeRow]:
    """Build rows from ``(price, volume, delta)`` tuples."""
    return [
        PriceVolumeRow(
            price=Decimal(price),
            volume=float(volume),
            delta_aggregate=float(delta),
            timestamp=timestamp,
        )
        for price, volume, delta in levels
    ]


def make_trade(
    price: str,
    side: TradeSide = TradeSide.LONG,
    trade_id: str = "",
    r: float | None = None,
    opened: datetime | None = None,
) -> Trade:
    return Trade(
        id=trade_id,
        side=side,
        entry_price=Decimal(price),
        instrument="ES",
        open_timestamp=opened,
        r_multiple=r,
    )


@pytest.fixture
def session_rows() -> list[PriceVolumeRow]:
    """One ES session with a clear POC and a thin low tail."""
    return make_rows(SESSION_LEVELS)


@pytest.fixture
def small_rows() -> list[PriceVolumeRow]:
    """Three-level day: POC 100.25, VA [100.00, 100.25]."""
    return make_rows([("100.00", 50, 0), ("100.25", 120, 0), ("100.50", 30, 0)])


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

# A12 is split into two legs; D9 has an unreadable close date.
STATEMENT_TEXT = (
    "Symbol;Side;Size;P&L;Fee;Open Price;Close Price;Open Date;Close Date;"
    "Open Order;Close Order;Pips\n"
    "ES(Z5);BUY;1;$125,00;-2,50;5000,25;5002,75;03.11.25 15:30:00;03.11.25 15:45:10;A12;C1;10\n"
    "ES(Z5);BUY;1;-$37,50;-2,50;5000,25;4999,50;03.11.25 15:30:00;03.11.25 15:50:00;A12;C2;\n"
    "ES(Z5);SELL;2;250;-5;5010;5007,5;03.11.25 16:00;03.11.25 16:20;B7;C3;10\n"
    "NQ(Z5);BUY;1;100;-2;18000;18005;03.11.25 16:00;03.11.25 16:30;N1;C4;20\n"
    "ES(Z5);SELL;1;50;-2;5005;5004;03.11.25 17:00;not a date;D9;C5;4\n"
)

UTC = timezone.utc


@pytest.fixture
def statement_text() -> str:
    return STATEMENT_TEXT


@pytest.fixture
def options() -> ImportOptions:
    return ImportOptions(owner_id="u1", instrument="ES")


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture
def trade_store() -> InMemoryTradeStore:
    return InMemoryTradeStore()


@pytest.fixture
def day_store() -> InMemoryVolumeDayStore:
    return InMemoryVolumeDayStore()
