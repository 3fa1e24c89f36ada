"""Classify a trade's entry price against the day's volume profile.

All rank-style metrics use the same two primitives over an ascending
sorted array:

* ``percentile_rank`` - index of the first element >= value, over n-1.
* ``quantile`` - the element at ``floor((n-1) * p)``.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

import numpy as np

from volume_journal.core.enums import TradeSide
from volume_journal.core.models import EnrichedTrade, PriceVolumeRow, Profile, Trade

from .builder import grid_price, merge_rows

HVN_QUANTILE = 0.8
LVN_QUANTILE = 0.2
ES_THRESHOLD_QUANTILE = 0.7

# Fixed normalization to ES-sized volume.  Not derived from the instrument.
ES_EQUIVALENT_FACTOR = 0.1

THIN_BEHIND_MEDIAN_SHARE = 0.5


def quantile(sorted_values: np.ndarray, p: float) -> float:
    """Element at ``floor((n-1) * p)`` of an ascending array; 0 when empty."""
    if sorted_values.size == 0:
        return 0.0
    p = min(1.0, max(0.0, p))
    return float(sorted_values[math.floor((sorted_values.size - 1) * p)])


def percentile_rank(sorted_values: np.ndarray, value: float) -> float:
    """Rank of *value* in [0, 1]; 0 when there are fewer than two values."""
    n = sorted_values.size
    if n <= 1:
        return 0.0
    idx = int(np.searchsorted(sorted_values, value, side="left"))
    return min(idx, n - 1) / (n - 1)


def round_ticks(distance: Decimal, tick_size: Decimal) -> int:
    """Price distance in whole ticks, half-up."""
    return int((abs(distance) / tick_size).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def nearest_level(levels: list[PriceVolumeRow], price: Decimal) -> PriceVolumeRow | None:
    """First level (ascending price) at the minimum distance from *price*."""
    best: PriceVolumeRow | None = None
    best_dist: Decimal | None = None
    for row in levels:
        d = abs(row.price - price)
        if best_dist is None or d < best_dist:
            best, best_dist = row, d
    return best


def enrich(
    trade: Trade,
    profile: Profile,
    day_rows: Iterable[PriceVolumeRow] | None = None,
    tick_size: Decimal | float | str = Decimal("0.25"),
) -> EnrichedTrade:
    """Compute the location metrics of *trade* within *profile*.

    Parameters
    ----------
    trade : Trade
        Trade to classify; only side and entry price are read.
    profile : Profile
        Profile built from the same day's rows.
    day_rows : Iterable[PriceVolumeRow] | None
        The day's rows.  Defaults to ``profile.levels``.
    tick_size : Decimal
        Instrument tick used for distances and neighbour lookups.
    """
    tick = Decimal(str(tick_size))
    if tick <= 0:
        raise ValueError(f"tick_size must be positive, got {tick_size!r}")

    levels = merge_rows(day_rows) if day_rows is not None else list(profile.levels)
    by_price = {r.price: r for r in levels}
    vols = np.sort(np.array([r.volume for r in levels], dtype=float))
    abs_deltas = np.sort(np.abs(np.array([r.delta_aggregate for r in levels], dtype=float)))

    def vol(price: Decimal) -> float:
        row = by_price.get(grid_price(price))
        return row.volume if row is not None else 0.0

    p = grid_price(trade.entry_price)
    row = by_price.get(p)
    if row is None:
        row = nearest_level(levels, p)
    vol_at = row.volume if row is not None else 0.0
    delta = row.delta_aggregate if row is not None else 0.0

    edge_distance = min(
        round_ticks(p - profile.val, tick),
        round_ticks(profile.vah - p, tick),
    )
    edge_slope = vol_at - max(vol(p + tick), vol(p - tick))

    median = float(vols[vols.size // 2]) if vols.size else 0.0
    if trade.side is TradeSide.LONG:
        behind = vol(p - tick) + vol(p - 2 * tick)
        opposes = delta < 0
    else:
        behind = vol(p + tick) + vol(p + 2 * tick)
        opposes = delta > 0
    thin_behind = behind < THIN_BEHIND_MEDIAN_SHARE * median if median else False

    return EnrichedTrade(
        **{name: getattr(trade, name) for name in Trade.model_fields},
        volume_at_entry=vol_at,
        volume_percentile=percentile_rank(vols, vol_at),
        is_hvn=vol_at >= quantile(vols, HVN_QUANTILE),
        is_lvn=vol_at <= quantile(vols, LVN_QUANTILE),
        in_value_area=profile.val <= p <= profile.vah,
        distance_to_poc_ticks=round_ticks(p - profile.poc, tick),
        edge_distance_ticks=edge_distance,
        delta_aggregate=delta,
        delta_rank=percentile_rank(abs_deltas, abs(delta)),
        delta_opposes_side=opposes,
        edge_slope=edge_slope,
        thin_behind=thin_behind,
        volume_es_equivalent=vol_at * ES_EQUIVALENT_FACTOR,
        p70_es_volume=quantile(vols, ES_THRESHOLD_QUANTILE) * ES_EQUIVALENT_FACTOR,
        poc=profile.poc,
        val=profile.val,
        vah=profile.vah,
    )
