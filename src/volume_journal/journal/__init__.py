"""Trade journal analytics: stored metric patches and R-based KPIs."""

from volume_journal.journal.kpis import Kpis, calc_kpis, estimate_trade_pnl
from volume_journal.journal.metrics import (
    METRIC_FIELDS,
    ApplyResult,
    apply_day_metrics,
    metrics_patch,
)

__all__ = [
    # KPIs
    "Kpis",
    "calc_kpis",
    "estimate_trade_pnl",
    # Metric persistence
    "METRIC_FIELDS",
    "ApplyResult",
    "apply_day_metrics",
    "metrics_patch",
]
