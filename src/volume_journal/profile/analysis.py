"""Day analysis entry points shared by batch scoring and trade inspection.

Both paths go through :func:`build_profile`, :func:`enrich` and
:class:`GateEvaluator`; there is no second implementation of any metric.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from volume_journal.core.enums import GateMode, TradeSide
from volume_journal.core.interfaces import IVolumeDayStore
from volume_journal.core.models import (
    EnrichedTrade,
    PriceVolumeRow,
    Profile,
    Trade,
    VolumeDay,
)
from volume_journal.journal.kpis import Kpis, calc_kpis

from .builder import build_profile, merge_rows
from .enricher import enrich
from .gates import GateEvaluator

logger = logging.getLogger(__name__)

_evaluator = GateEvaluator()


@dataclass
class DayAnalysis:
    """Profile, gated trades and KPIs of one trading day."""

    day: str | None
    profile: Profile
    trades: list[EnrichedTrade] = field(default_factory=list)
    kpis: Kpis = field(default_factory=Kpis)
    kpis_pass: Kpis = field(default_factory=Kpis)

    @property
    def passed(self) -> list[EnrichedTrade]:
        return [t for t in self.trades if t.gate_pass]


@dataclass
class TradeInspection:
    """One trade scored against the profile at entry time and at the close."""

    at_entry: EnrichedTrade
    end_of_day: EnrichedTrade
    rows_at_entry: int = 0


# ---------------------------------------------------------------------------
# Trade mapping
# ---------------------------------------------------------------------------

def trade_from_document(doc: Mapping[str, Any]) -> Trade | None:
    """Map a stored trade document to the analysis :class:`Trade`.

    Returns ``None`` for documents without an open price, which cannot be
    located on a profile, or without a recognisable side.
    """
    open_price = doc.get("open_price")
    side = TradeSide.from_statement(doc.get("side"))
    if open_price is None or side is None:
        return None
    net_r = doc.get("net_r")
    return Trade(
        id=str(doc.get("id") or ""),
        side=side,
        entry_price=Decimal(str(open_price)),
        instrument=str(doc.get("instrument") or ""),
        open_timestamp=doc.get("open_date"),
        close_timestamp=doc.get("close_date"),
        external_key=doc.get("external_key"),
        size=doc.get("size"),
        pnl=doc.get("pnl"),
        fee=doc.get("fee"),
        r_multiple=float(net_r) if net_r is not None else None,
    )


def day_key(trade: Trade) -> str | None:
    """Day a trade belongs to: the date of its entry, not its close."""
    if trade.open_timestamp is None:
        return None
    return trade.open_timestamp.date().isoformat()


def trades_by_day(trades: Iterable[Trade]) -> dict[str, list[Trade]]:
    out: dict[str, list[Trade]] = {}
    for tr in trades:
        key = day_key(tr)
        if key is not None:
            out.setdefault(key, []).append(tr)
    return out


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def rows_at_entry(rows: Sequence[PriceVolumeRow], when: datetime | None) -> list[PriceVolumeRow]:
    """Rows traded at or before *when*.

    Rows without a timestamp are kept.  Without an entry time, or when
    the filter leaves nothing, the whole day is returned.
    """
    if when is None or not rows:
        return list(rows)
    when = _aware(when)
    kept = [r for r in rows if r.timestamp is None or _aware(r.timestamp) <= when]
    return kept or list(rows)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def analyze_day(
    trades: Iterable[Trade],
    rows: Iterable[PriceVolumeRow],
    tick_size: Decimal | float | str,
    mode: GateMode | str,
    day: str | None = None,
) -> DayAnalysis:
    """Score every trade of one day against the day's full profile."""
    mode = GateMode(mode)
    profile = build_profile(rows, Decimal(str(tick_size)))

    scored = [
        _evaluator.apply(enrich(tr, profile, tick_size=tick_size), mode)
        for tr in trades
    ]
    passed = [t for t in scored if t.gate_pass]
    logger.debug(
        "Analysed day %s (%s): %d trades, %d passed",
        day or "-", mode.value, len(scored), len(passed),
    )
    return DayAnalysis(
        day=day,
        profile=profile,
        trades=scored,
        kpis=calc_kpis(t.r_multiple for t in scored),
        kpis_pass=calc_kpis(t.r_multiple for t in passed),
    )


def inspect_trade(
    trade: Trade,
    rows: Sequence[PriceVolumeRow],
    tick_size: Decimal | float | str,
    mode: GateMode | str,
) -> TradeInspection:
    """Score *trade* with the profile as it stood at entry and at the close."""
    mode = GateMode(mode)
    entry_rows = rows_at_entry(rows, trade.open_timestamp)

    at_entry = enrich(trade, build_profile(entry_rows), tick_size=tick_size)
    end_of_day = enrich(trade, build_profile(rows), tick_size=tick_size)
    return TradeInspection(
        at_entry=_evaluator.apply(at_entry, mode),
        end_of_day=_evaluator.apply(end_of_day, mode),
        rows_at_entry=len(entry_rows),
    )


async def upsert_volume_day(
    store: IVolumeDayStore,
    owner_id: str,
    instrument: str,
    day: str,
    rows: Iterable[PriceVolumeRow],
    tick_size: Decimal | float | str = Decimal("0.25"),
    source: str = "volfix",
) -> VolumeDay:
    """Replace the stored rows of one (owner, instrument, day) scope.

    Rows are merged on the price grid first; the stored profile summary is
    built from the merged rows.
    """
    tick = Decimal(str(tick_size))
    merged = merge_rows(rows)
    profile = build_profile(merged, tick)
    saved = await store.save_day(
        VolumeDay(
            owner_id=owner_id,
            instrument=instrument.strip().upper(),
            day=day,
            tick_size=tick,
            source=source,
            rows=merged,
            profile=profile.summary(),
        )
    )
    logger.info("Stored %s %s: %d levels", saved.instrument, saved.day, len(saved.rows))
    return saved
