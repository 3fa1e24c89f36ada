"""R-multiple KPIs and the fixed-R P&L estimate.

All inputs are explicit; nothing here reads a stored multiplier.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Iterable

# Floor for the average loss so payoff stays finite on loss-free samples.
MIN_AVG_LOSS = 1e-9


@dataclass(frozen=True)
class Kpis:
    count: int = 0
    win_rate: float = 0.0
    payoff: float = 0.0
    expectancy: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def calc_kpis(r_values: Iterable[float | None]) -> Kpis:
    """Win rate, payoff and expectancy over the trades that have an R.

    Wins are ``R > 0``; everything else (including scratch trades at
    exactly 0R) counts as a loss.
    """
    rs = [float(r) for r in r_values if r is not None and math.isfinite(float(r))]
    if not rs:
        return Kpis()

    wins = [r for r in rs if r > 0]
    losses = [r for r in rs if r <= 0]

    win_rate = len(wins) / len(rs)
    avg_win = math.fsum(wins) / max(1, len(wins))
    avg_loss = abs(math.fsum(losses)) / max(1, len(losses))

    return Kpis(
        count=len(rs),
        win_rate=win_rate,
        payoff=avg_win / max(MIN_AVG_LOSS, avg_loss),
        expectancy=win_rate * avg_win - (1 - win_rate) * avg_loss,
    )


def estimate_trade_pnl(
    is_profit: bool,
    per_contract_risk: Decimal | float,
    contracts: Decimal | float,
    rr_multiple: Decimal | float,
) -> Decimal:
    """P&L of a trade that hit its target (``rr_multiple`` x risk) or its stop.

    Parameters
    ----------
    is_profit : bool
        Whether the trade closed at target.
    per_contract_risk : Decimal
        Dollar risk per contract from entry to stop.
    contracts : Decimal
        Position size.
    rr_multiple : Decimal
        Reward-to-risk multiple applied to winners.
    """
    risk = Decimal(str(per_contract_risk)) * Decimal(str(contracts))
    if is_profit:
        return risk * Decimal(str(rr_multiple))
    return -risk
