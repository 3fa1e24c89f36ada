"""Volume profile construction: POC and 70% value area.

Rows are merged onto a fixed 0.01 price grid, then the value area is
grown outward from the point of control one level at a time, always
taking the heavier neighbour.  The tie-break order (lower side first on
equal volume) is part of the output contract and must not change.
"""

from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from volume_journal.core.models import PriceVolumeRow, Profile

logger = logging.getLogger(__name__)

PRICE_GRID = Decimal("0.01")
VALUE_AREA_SHARE = 0.7

# Volume used for a side whose pointer has run off the profile.
_EXHAUSTED = -1.0


def grid_price(price: Decimal | float | str) -> Decimal:
    """Round a price onto the profile grid (half-up)."""
    return Decimal(str(price)).quantize(PRICE_GRID, rounding=ROUND_HALF_UP)


def merge_rows(rows: Iterable[PriceVolumeRow]) -> list[PriceVolumeRow]:
    """Merge rows sharing a grid price and sort by ascending price.

    Volumes and deltas are summed with :func:`math.fsum` so the result
    does not depend on input order.
    """
    volumes: dict[Decimal, list[float]] = {}
    deltas: dict[Decimal, list[float]] = {}
    for row in rows:
        p = grid_price(row.price)
        volumes.setdefault(p, []).append(float(row.volume or 0.0))
        deltas.setdefault(p, []).append(float(row.delta_aggregate or 0.0))

    return [
        PriceVolumeRow(
            price=p,
            volume=math.fsum(volumes[p]),
            delta_aggregate=math.fsum(deltas[p]),
        )
        for p in sorted(volumes)
    ]


def _poc_index(levels: list[PriceVolumeRow]) -> int:
    # Strictly greater wins, so equal maxima resolve to the lowest price.
    idx = 0
    for i in range(1, len(levels)):
        if levels[i].volume > levels[idx].volume:
            idx = i
    return idx


def _value_area(levels: list[PriceVolumeRow], poc_idx: int, total: float) -> tuple[Decimal, Decimal]:
    target = VALUE_AREA_SHARE * total
    cum = levels[poc_idx].volume
    left = poc_idx - 1
    right = poc_idx + 1
    val = vah = levels[poc_idx].price
    n = len(levels)

    while cum < target and (left >= 0 or right < n):
        v_left = levels[left].volume if left >= 0 else _EXHAUSTED
        v_right = levels[right].volume if right < n else _EXHAUSTED

        if v_left > v_right:
            cum += v_left
            val = levels[left].price
            left -= 1
        elif v_right > v_left:
            cum += v_right
            vah = levels[right].price
            right += 1
        else:
            if left >= 0:
                cum += v_left
                val = levels[left].price
                left -= 1
            if cum >= target:
                break
            if right < n:
                cum += v_right
                vah = levels[right].price
                right += 1

    return val, vah


def build_profile(
    rows: Iterable[PriceVolumeRow],
    tick_size: Decimal | None = None,
) -> Profile:
    """Build the volume profile for one day of price/volume rows.

    Parameters
    ----------
    rows : Iterable[PriceVolumeRow]
        Raw rows; duplicates per grid price are merged.
    tick_size : Decimal | None
        Instrument tick.  The grid is fixed at 0.01 regardless; a tick
        that is not a whole multiple of the grid is logged because
        adjacent levels will then be merged or split incorrectly.

    Returns
    -------
    Profile
        The zero-value profile when there are no rows.
    """
    if tick_size is not None and Decimal(str(tick_size)) % PRICE_GRID != 0:
        logger.warning(
            "Tick size %s is finer than the %s profile grid; levels may merge",
            tick_size, PRICE_GRID,
        )

    levels = merge_rows(rows)
    if not levels:
        return Profile()

    poc_idx = _poc_index(levels)
    total = math.fsum(r.volume for r in levels)
    val, vah = _value_area(levels, poc_idx, total)

    logger.debug(
        "Built profile: %d levels, POC=%s VA=[%s, %s] total=%s",
        len(levels), levels[poc_idx].price, val, vah, total,
    )
    return Profile(
        levels=tuple(levels),
        poc=levels[poc_idx].price,
        val=val,
        vah=vah,
        total_volume=total,
        level_count=len(levels),
    )
