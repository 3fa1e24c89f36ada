"""Persist enriched-trade metrics onto stored trades.

Only the fields named in :data:`METRIC_FIELDS` are ever written, each
through a field-level ``set`` on the trade store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from volume_journal.core.enums import GateMode
from volume_journal.core.interfaces import ITradeStore
from volume_journal.core.models import EnrichedTrade

logger = logging.getLogger(__name__)

# Stored field name -> EnrichedTrade attribute.
METRIC_FIELDS: dict[str, str] = {
    "vj_poc": "poc",
    "vj_val": "val",
    "vj_vah": "vah",
    "vj_vol_at_entry": "volume_at_entry",
    "vj_vol_pctile": "volume_percentile",
    "vj_is_hvn": "is_hvn",
    "vj_is_lvn": "is_lvn",
    "vj_in_value_area": "in_value_area",
    "vj_dist_to_poc_ticks": "distance_to_poc_ticks",
    "vj_va_edge_dist_ticks": "edge_distance_ticks",
    "vj_delta_agg": "delta_aggregate",
    "vj_delta_rank": "delta_rank",
    "vj_delta_opposes_side": "delta_opposes_side",
    "vj_edge_slope": "edge_slope",
    "vj_thin_behind": "thin_behind",
    "vj_vol_es_equiv": "volume_es_equivalent",
    "vj_p70_es": "p70_es_volume",
    "vj_level_score": "level_score",
    "vj_gate_pass": "gate_pass",
    "vj_flags": "flags",
}

# Ranks are stored rounded; they are display values, not inputs.
_ROUNDED = {"vj_vol_pctile": 4, "vj_delta_rank": 4}


@dataclass
class ApplyResult:
    ok: int = 0
    fail: int = 0


def metrics_patch(tr: EnrichedTrade, day: str, mode: GateMode | str) -> dict[str, Any]:
    """Field-level patch for one enriched trade."""
    patch: dict[str, Any] = {}
    for stored, attr in METRIC_FIELDS.items():
        value = getattr(tr, attr)
        if stored in _ROUNDED:
            value = round(float(value), _ROUNDED[stored])
        elif isinstance(value, list):
            value = list(value)
        patch[stored] = value
    patch["vj_calc_date"] = day
    patch["vj_apply_mode"] = GateMode(mode).value
    return patch


async def apply_day_metrics(
    store: ITradeStore,
    owner_id: str,
    day: str,
    mode: GateMode | str,
    enriched: Iterable[EnrichedTrade],
) -> ApplyResult:
    """Write metric fields for each trade of one analysed day.

    A trade without an id or one the store no longer has counts as a
    failure.  Store errors propagate.
    """
    mode = GateMode(mode)
    result = ApplyResult()
    for tr in enriched:
        if not tr.id:
            result.fail += 1
            continue
        patch = metrics_patch(tr, day, mode)
        if await store.set_fields(owner_id, tr.id, patch):
            result.ok += 1
        else:
            logger.warning("Trade %s not found while applying %s metrics", tr.id, day)
            result.fail += 1

    logger.info("Applied %s metrics for %s: ok=%d fail=%d", mode.value, day, result.ok, result.fail)
    return result
