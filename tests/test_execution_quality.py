from __future__ import annotations

import pytest

from rjournal.metrics.execution import compute_execution_quality
from rjournal.models import Trade


def test_empty_input_is_all_zero() -> None:
    quality = compute_execution_quality([])

    assert quality.scatter_data == []
    stats = quality.stats
    assert (stats.avg_mfe_winners, stats.avg_mae_losers, stats.efficiency) == (0.0, 0.0, 0.0)
    assert (stats.win_count, stats.loss_count) == (0, 0)


def test_scatter_excludes_trades_without_mfe(make_trade) -> None:
    trades = [
        make_trade(r_multiple=2, mfe=3, mae=0.5, result="WIN"),
        make_trade(r_multiple=-1, mfe="", mae=1, result="LOSS"),
        make_trade(r_multiple=-1, mfe=0, mae=1, result="LOSS"),
        make_trade(r_multiple=-0.5, mfe=0.25, mae=1, result="LOSS"),
    ]

    scatter = compute_execution_quality(trades).scatter_data

    assert len(scatter) == 2
    assert scatter[0].r == 2.0
    assert scatter[0].mfe == 3.0
    assert scatter[0].mae == 0.5
    assert scatter[0].result == "WIN"
    assert all(point.mfe != 0 for point in scatter)


def test_winner_loser_split_and_efficiency(make_trade) -> None:
    trades = [
        make_trade(r_multiple=2, mfe=4),
        make_trade(r_multiple=1, mfe=1),
        make_trade(r_multiple=0, mfe=2, mae=0.5),
        make_trade(r_multiple=-1, mae=1.5),
    ]

    stats = compute_execution_quality(trades).stats

    assert stats.win_count == 2
    assert stats.loss_count == 2
    assert stats.win_count + stats.loss_count == len(trades)
    assert stats.avg_mfe_winners == pytest.approx(2.5)
    assert stats.avg_mae_losers == pytest.approx(1.0)
    assert stats.efficiency == pytest.approx(60.0)


def test_efficiency_zero_without_winners(make_trade) -> None:
    stats = compute_execution_quality([make_trade(r_multiple=-1, mfe=2)]).stats

    assert stats.efficiency == 0.0
    assert stats.avg_mfe_winners == 0.0


def test_efficiency_zero_when_winners_have_no_mfe(make_trade) -> None:
    stats = compute_execution_quality([make_trade(r_multiple=1)]).stats

    assert stats.win_count == 1
    assert stats.efficiency == 0.0


def test_raw_string_fields_are_coerced() -> None:
    # Records built outside the boundary may still carry form strings.
    trade = Trade(date="2024-03-04", time="09:30", symbol="MES", r_multiple="1.5", mfe="3", mae="")

    quality = compute_execution_quality([trade])

    assert quality.scatter_data[0].r == 1.5
    assert quality.stats.efficiency == pytest.approx(50.0)
