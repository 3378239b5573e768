from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from rjournal.metrics.coerce import mean, num, win_rate
from rjournal.models import Trade


@dataclass(frozen=True)
class ConditionImpact:
    condition: str
    count: int
    win_rate: float
    avg_r: float
    avg_r_without: float
    delta: float
    delta_vs_without: float


@dataclass(frozen=True)
class ConditionImpactReport:
    global_avg_r: float
    impact_data: list[ConditionImpact]


def compute_condition_impact(trades: Iterable[Trade]) -> ConditionImpactReport:
    """Average R per condition tag, compared with the whole book and with its complement.

    ``delta`` is the tag's average R minus the average over every trade;
    ``delta_vs_without`` compares against only the trades lacking the tag.
    Rows come back sorted by ``delta``, largest first.
    """
    trade_list = list(trades)
    r_values = [num(trade.r_multiple) for trade in trade_list]
    global_avg_r = mean(r_values)

    impact_data: list[ConditionImpact] = []
    for condition in active_conditions(trade_list):
        with_tag: list[float] = []
        without_tag: list[float] = []
        for trade, r_value in zip(trade_list, r_values):
            if condition in trade.conditions:
                with_tag.append(r_value)
            else:
                without_tag.append(r_value)

        wins = sum(1 for value in with_tag if value > 0)
        avg_r = mean(with_tag)
        avg_r_without = mean(without_tag)
        impact_data.append(
            ConditionImpact(
                condition=condition,
                count=len(with_tag),
                win_rate=win_rate(wins, len(with_tag)),
                avg_r=avg_r,
                avg_r_without=avg_r_without,
                delta=avg_r - global_avg_r,
                delta_vs_without=avg_r - avg_r_without,
            )
        )

    impact_data.sort(key=lambda row: row.delta, reverse=True)
    return ConditionImpactReport(global_avg_r=global_avg_r, impact_data=impact_data)


def active_conditions(trades: Iterable[Trade]) -> list[str]:
    seen: dict[str, None] = {}
    for trade in trades:
        for condition in sorted(trade.conditions):
            seen.setdefault(condition, None)
    return list(seen)
