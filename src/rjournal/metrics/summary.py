from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable

from rjournal.metrics.conditions import ConditionImpactReport, compute_condition_impact
from rjournal.metrics.execution import ExecutionQuality, compute_execution_quality
from rjournal.metrics.model_performance import ModelPerformance, compute_model_performance
from rjournal.metrics.timing import TimeMetrics, compute_time_metrics
from rjournal.models import Trade


@dataclass(frozen=True)
class Dashboard:
    trade_count: int
    model_performance: list[ModelPerformance]
    condition_impact: ConditionImpactReport
    time_metrics: TimeMetrics
    execution_quality: ExecutionQuality


def compute_dashboard(trades: Iterable[Trade]) -> Dashboard:
    trade_list = list(trades)
    return Dashboard(
        trade_count=len(trade_list),
        model_performance=compute_model_performance(trade_list),
        condition_impact=compute_condition_impact(trade_list),
        time_metrics=compute_time_metrics(trade_list),
        execution_quality=compute_execution_quality(trade_list),
    )


def dashboard_payload(dashboard: Dashboard) -> dict[str, Any]:
    return asdict(dashboard)
