from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from rjournal.metrics.coerce import num
from rjournal.models import Trade


@dataclass(frozen=True)
class ScatterPoint:
    r: float
    mfe: float
    mae: float
    result: str


@dataclass(frozen=True)
class ExecutionStats:
    avg_mfe_winners: float
    avg_mae_losers: float
    efficiency: float
    win_count: int
    loss_count: int


@dataclass(frozen=True)
class ExecutionQuality:
    scatter_data: list[ScatterPoint]
    stats: ExecutionStats


def compute_execution_quality(trades: Iterable[Trade]) -> ExecutionQuality:
    """Realized R versus excursions.

    Efficiency is the share of the winners' MFE that was actually banked:
    sum of winning R over sum of winning MFE, as a percentage. Trades with no
    MFE recorded are left out of the scatter but still count as winners or
    losers.
    """
    trade_list = list(trades)
    scatter_data = [
        ScatterPoint(
            r=num(trade.r_multiple),
            mfe=num(trade.mfe),
            mae=num(trade.mae),
            result=trade.result,
        )
        for trade in trade_list
        if num(trade.mfe) != 0
    ]

    winners = [trade for trade in trade_list if num(trade.r_multiple) > 0]
    losers = [trade for trade in trade_list if num(trade.r_multiple) <= 0]

    winner_mfe = sum(num(trade.mfe) for trade in winners)
    winner_r = sum(num(trade.r_multiple) for trade in winners)
    avg_mfe_winners = winner_mfe / len(winners) if winners else 0.0
    avg_mae_losers = sum(num(trade.mae) for trade in losers) / len(losers) if losers else 0.0
    efficiency = winner_r / winner_mfe * 100.0 if winner_mfe else 0.0

    return ExecutionQuality(
        scatter_data=scatter_data,
        stats=ExecutionStats(
            avg_mfe_winners=avg_mfe_winners,
            avg_mae_losers=avg_mae_losers,
            efficiency=efficiency,
            win_count=len(winners),
            loss_count=len(losers),
        ),
    )
