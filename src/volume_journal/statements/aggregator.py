"""Group statement rows into one round-trip trade per open order id.

Brokers split a position into several legs that share the ``Open Order``
id.  Size, P&L and fee are additive across legs; pips are a per-leg
price distance and are taken from the first leg that has them.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from volume_journal.core.models import AggregatedImportRow, ImportRow

_NO_OPEN_PREFIX = "__noopen__"


def _sum(values: Iterable[Decimal | None]) -> Decimal | None:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present, Decimal("0"))


def _first(values: Iterable[Decimal | None]) -> Decimal | None:
    for v in values:
        if v is not None:
            return v
    return None


def _latest_close(legs: Sequence[ImportRow]) -> ImportRow:
    # First seen wins on equal close dates; legs without a date never win.
    best = legs[0]
    best_date: datetime | None = None
    for leg in legs:
        if leg.close_date is not None and (best_date is None or leg.close_date > best_date):
            best, best_date = leg, leg.close_date
    return best


def _merge(key: str, legs: Sequence[ImportRow]) -> AggregatedImportRow:
    first = legs[0]
    closing = _latest_close(legs)
    dated = [leg for leg in legs if leg.open_date is not None]
    opening = min(dated, key=lambda leg: leg.open_date) if dated else first

    return AggregatedImportRow(
        **first.model_dump(),
        group_key=key,
        leg_count=len(legs),
    ).model_copy(
        update={
            "size": _sum(leg.size for leg in legs),
            "pnl": _sum(leg.pnl for leg in legs),
            "fee": _sum(leg.fee for leg in legs),
            "pips": _first(leg.pips for leg in legs),
            "open_date": opening.open_date,
            "open_date_raw": opening.open_date_raw,
            "close_date": closing.close_date,
            "close_date_raw": closing.close_date_raw,
            "close_price": closing.close_price,
            "close_order_id": closing.close_order_id,
        }
    )


def group_rows(rows: Iterable[ImportRow]) -> list[AggregatedImportRow]:
    """Aggregate *rows* by trimmed open order id.

    Groups are returned in order of first appearance.  Rows with a blank
    id are never merged; each gets a synthetic key of its own.
    """
    groups: dict[str, list[ImportRow]] = {}
    for i, row in enumerate(rows):
        open_id = row.open_order_id.strip()
        key = open_id or f"{_NO_OPEN_PREFIX}{i}"
        groups.setdefault(key, []).append(row)

    out: list[AggregatedImportRow] = []
    for key, legs in groups.items():
        if key.startswith(_NO_OPEN_PREFIX):
            out.append(AggregatedImportRow(**legs[0].model_dump(), group_key=key))
        else:
            out.append(_merge(key, legs))
    return out
