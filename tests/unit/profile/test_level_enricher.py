"""Tests for entry-location metrics computed against a day's profile."""

from __future__ import annotations

from decimal import Decimal

import numpy as np
import pytest

from conftest import make_rows, make_trade

from volume_journal.core.enums import TradeSide
from volume_journal.profile.builder import build_profile
from volume_journal.profile.enricher import (
    enrich,
    nearest_level,
    percentile_rank,
    quantile,
    round_ticks,
)


class TestRankPrimitives:
    def test_percentile_rank_uses_first_index_at_or_above(self):
        vals = np.array([1.0, 2.0, 2.0, 5.0])
        assert percentile_rank(vals, 2.0) == pytest.approx(1 / 3)
        assert percentile_rank(vals, 1.0) == 0.0
        assert percentile_rank(vals, 5.0) == 1.0

    def test_percentile_rank_degenerate(self):
        assert percentile_rank(np.array([]), 3.0) == 0.0
        assert percentile_rank(np.array([7.0]), 7.0) == 0.0

    def test_percentile_rank_above_max_is_one(self):
        assert percentile_rank(np.array([1.0, 2.0]), 9.0) == 1.0

    def test_quantile_floors_index(self):
        vals = np.array([5.0, 10.0, 15.0, 20.0, 40.0, 50.0, 80.0, 90.0, 150.0])
        assert quantile(vals, 0.8) == 80.0
        assert quantile(vals, 0.2) == 10.0
        assert quantile(vals, 0.7) == 50.0
        assert quantile(np.array([]), 0.5) == 0.0

    def test_round_ticks(self):
        assert round_ticks(Decimal("0.375"), Decimal("0.25")) == 2
        assert round_ticks(Decimal("-0.75"), Decimal("0.25")) == 3

    def test_nearest_level_prefers_lower_price_on_tie(self):
        levels = make_rows([("100.00", 1, 0), ("100.50", 2, 0)])
        assert nearest_level(levels, Decimal("100.25")).price == Decimal("100.00")
        assert nearest_level([], Decimal("1")) is None


class TestEnrich:
    def test_long_at_low_volume_tail(self, session_rows):
        prof = build_profile(session_rows)
        tr = enrich(make_trade("100.00", TradeSide.LONG), prof)

        assert tr.volume_at_entry == 10
        assert tr.volume_percentile == pytest.approx(0.125)
        assert tr.is_lvn and not tr.is_hvn
        assert not tr.in_value_area
        assert tr.distance_to_poc_ticks == 4
        assert tr.edge_distance_ticks == 3
        assert tr.delta_aggregate == -50
        assert tr.delta_rank == pytest.approx(0.875)
        assert tr.delta_opposes_side
        assert tr.edge_slope == -10
        assert tr.thin_behind
        assert tr.volume_es_equivalent == pytest.approx(1.0)
        assert tr.p70_es_volume == pytest.approx(5.0)
        assert (tr.poc, tr.val, tr.vah) == (prof.poc, prof.val, prof.vah)

    def test_long_above_value_area(self, session_rows):
        tr = enrich(make_trade("101.75", TradeSide.LONG), build_profile(session_rows))
        assert tr.volume_percentile == pytest.approx(0.25)
        assert not tr.is_hvn and not tr.is_lvn
        assert tr.edge_distance_ticks == 1
        assert tr.delta_rank == 1.0
        assert not tr.delta_opposes_side
        assert not tr.thin_behind
        assert tr.edge_slope == -35

    def test_short_delta_opposition_flips(self, session_rows):
        tr = enrich(make_trade("101.75", TradeSide.SHORT), build_profile(session_rows))
        assert tr.delta_opposes_side
        # Above: 102.00 (5) + 102.25 (0) is under half the median of 40.
        assert tr.thin_behind

    def test_poc_entry_is_hvn(self, session_rows):
        tr = enrich(make_trade("101.00"), build_profile(session_rows))
        assert tr.is_hvn
        assert tr.in_value_area
        assert tr.distance_to_poc_ticks == 0
        assert tr.volume_percentile == 1.0

    def test_off_grid_entry_uses_nearest_level(self, session_rows):
        tr = enrich(make_trade("100.10"), build_profile(session_rows))
        assert tr.volume_at_entry == 10

    def test_empty_profile(self):
        tr = enrich(make_trade("100.00"), build_profile([]))
        assert tr.volume_at_entry == 0
        assert tr.volume_percentile == 0
        assert tr.delta_rank == 0
        assert not tr.thin_behind

    def test_trade_fields_are_carried(self, session_rows):
        trade = make_trade("100.00", trade_id="t-1", r=2.0)
        tr = enrich(trade, build_profile(session_rows))
        assert tr.id == "t-1"
        assert tr.r_multiple == 2.0
        assert tr.entry_price == Decimal("100.00")

    def test_explicit_day_rows(self, session_rows):
        prof = build_profile(session_rows)
        a = enrich(make_trade("100.50"), prof)
        b = enrich(make_trade("100.50"), prof, day_rows=session_rows)
        assert a.model_dump() == b.model_dump()

    def test_non_positive_tick_rejected(self, session_rows):
        with pytest.raises(ValueError):
            enrich(make_trade("100.00"), build_profile(session_rows), tick_size="0")
