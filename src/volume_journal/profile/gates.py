"""Fade / Breakout entry gates and the 0-10 level score.

A gate either passes with the full list of conditions that held, or
fails with no flags at all; :class:`GateResult` rejects anything else.
"""

from __future__ import annotations

from volume_journal.core.enums import GateMode, TradeSide
from volume_journal.core.models import EnrichedTrade, GateResult

FLAG_EDGE_VA = "edge VA"
FLAG_DELTA_OPPOSED = "delta opp (≥p70)"
FLAG_THIN_LEDGE = "thin/ledge"
FLAG_OUTSIDE_MID_VOL = "outside & mid-vol"
FLAG_DELTA_WITH = "delta with (≥p70)"
FLAG_NOT_THIN = "not thin"

EDGE_TICKS = 4
AVOID_POC_TICKS = 6
FAR_FROM_POC_TICKS = 8
DELTA_RANK_MIN = 0.7
LOW_PCTILE = 0.2
HIGH_PCTILE = 0.8
MAX_SCORE = 10


def _slope_with_side(tr: EnrichedTrade) -> bool:
    return tr.edge_slope * tr.side.sign > 0


def fade_conditions(tr: EnrichedTrade) -> list[tuple[str, bool]]:
    """Fade playbook conditions, in flag order."""
    if tr.side is TradeSide.LONG:
        extreme = tr.is_lvn or tr.volume_percentile <= LOW_PCTILE
    else:
        extreme = tr.is_hvn or tr.volume_percentile >= HIGH_PCTILE
    at_edge = (
        not tr.in_value_area
        and tr.edge_distance_ticks <= EDGE_TICKS
        and extreme
    )
    delta_opposed = tr.delta_opposes_side and tr.delta_rank >= DELTA_RANK_MIN
    thin_or_ledge = tr.thin_behind or _slope_with_side(tr)
    return [
        (FLAG_EDGE_VA, at_edge),
        (FLAG_DELTA_OPPOSED, delta_opposed),
        (FLAG_THIN_LEDGE, thin_or_ledge),
    ]


def fade_vetoed(tr: EnrichedTrade) -> bool:
    """Never fade into an HVN on the long side, or an HVN close to POC."""
    return tr.is_hvn and (
        tr.side is TradeSide.LONG or tr.distance_to_poc_ticks <= AVOID_POC_TICKS
    )


def breakout_conditions(tr: EnrichedTrade) -> list[tuple[str, bool]]:
    """Breakout playbook conditions, in flag order."""
    outside_mid = (
        not tr.in_value_area
        and LOW_PCTILE < tr.volume_percentile < HIGH_PCTILE
    )
    delta_with = not tr.delta_opposes_side and tr.delta_rank >= DELTA_RANK_MIN
    return [
        (FLAG_OUTSIDE_MID_VOL, outside_mid),
        (FLAG_DELTA_WITH, delta_with),
        (FLAG_NOT_THIN, not tr.thin_behind),
    ]


def level_score(tr: EnrichedTrade) -> int:
    """Additive 0-10 quality score of the entry level."""
    s = 0
    if tr.edge_distance_ticks <= EDGE_TICKS:
        s += 2
    if tr.side is TradeSide.LONG and tr.is_lvn:
        s += 2
    if tr.side is TradeSide.SHORT and tr.is_hvn:
        s += 2
    if tr.delta_opposes_side and tr.delta_rank >= DELTA_RANK_MIN:
        s += 2
    if _slope_with_side(tr):
        s += 1
    if tr.thin_behind:
        s += 1
    if tr.distance_to_poc_ticks >= FAR_FROM_POC_TICKS:
        s += 1
    if tr.volume_es_equivalent >= tr.p70_es_volume:
        s += 1
    return max(0, min(MAX_SCORE, s))


class GateEvaluator:
    """Evaluate enriched trades against a playbook.

    Usage::

        evaluator = GateEvaluator()
        result = evaluator.evaluate(enriched, GateMode.FADE)
        scored = evaluator.apply(enriched, GateMode.FADE)
    """

    def evaluate(self, tr: EnrichedTrade, mode: GateMode | str) -> GateResult:
        mode = GateMode(mode)
        if mode is GateMode.FADE:
            conditions = fade_conditions(tr)
            passed = all(ok for _, ok in conditions) and not fade_vetoed(tr)
        else:
            conditions = breakout_conditions(tr)
            passed = all(ok for _, ok in conditions)

        flags = tuple(name for name, ok in conditions if ok) if passed else ()
        return GateResult(passed=passed, score=level_score(tr), flags=flags)

    def apply(self, tr: EnrichedTrade, mode: GateMode | str) -> EnrichedTrade:
        """Return a copy of *tr* with score, pass and flags filled in."""
        result = self.evaluate(tr, mode)
        return tr.model_copy(
            update={
                "level_score": result.score,
                "gate_pass": result.passed,
                "flags": list(result.flags),
            }
        )
