"""Volume profile engine: profile building, entry enrichment and gates."""

from volume_journal.profile.analysis import (
    DayAnalysis,
    TradeInspection,
    analyze_day,
    inspect_trade,
    rows_at_entry,
    trade_from_document,
    upsert_volume_day,
)
from volume_journal.profile.builder import build_profile, merge_rows
from volume_journal.profile.day_file import DayFile, parse_day_file, split_by_day
from volume_journal.profile.enricher import enrich
from volume_journal.profile.gates import GateEvaluator

__all__ = [
    # Builder
    "build_profile",
    "merge_rows",
    # Enrichment and gates
    "enrich",
    "GateEvaluator",
    # Day files
    "DayFile",
    "parse_day_file",
    "split_by_day",
    # Analysis
    "DayAnalysis",
    "TradeInspection",
    "analyze_day",
    "inspect_trade",
    "rows_at_entry",
    "trade_from_document",
    "upsert_volume_day",
]
