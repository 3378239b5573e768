from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from rjournal.metrics.coerce import num, win_rate
from rjournal.models import Trade

UNSPECIFIED_MODEL = "Unspecified"


@dataclass(frozen=True)
class ModelPerformance:
    model: str
    count: int
    win_rate: float
    avg_r: float
    total_r: float


@dataclass
class _ModelBucket:
    count: int = 0
    wins: int = 0
    total_r: float = 0.0


def compute_model_performance(trades: Iterable[Trade]) -> list[ModelPerformance]:
    """Per-model count, win rate and R, best net R first.

    A win is any trade with R above zero, whatever its result label says.
    Models with equal net R keep the order they were first seen in.
    """
    buckets: dict[str, _ModelBucket] = {}
    for trade in trades:
        label = trade.model or UNSPECIFIED_MODEL
        bucket = buckets.setdefault(label, _ModelBucket())
        r_value = num(trade.r_multiple)
        bucket.count += 1
        bucket.total_r += r_value
        if r_value > 0:
            bucket.wins += 1

    rows = [
        ModelPerformance(
            model=label,
            count=bucket.count,
            win_rate=win_rate(bucket.wins, bucket.count),
            avg_r=bucket.total_r / bucket.count if bucket.count else 0.0,
            total_r=bucket.total_r,
        )
        for label, bucket in buckets.items()
    ]
    return sorted(rows, key=lambda row: row.total_r, reverse=True)
