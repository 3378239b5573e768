from __future__ import annotations

from datetime import datetime

import pytest

from rjournal.models import Trade, TradeFilter, filter_trades, parse_conditions, toggle_condition


def test_from_record_normalizes_form_values() -> None:
    trade = Trade.from_record(
        {
            "id": 42,
            "date": "2024-03-04",
            "time": "09:30:00",
            "symbol": "MNQ",
            "model": "Reversal",
            "result": "loss",
            "entry_price": "18000.25",
            "exit_price": "",
            "r_multiple": "-1",
            "mfe": None,
            "mae": "oops",
            "notes": None,
            "conditions": {"VWAP": True, "News": False},
        }
    )

    assert trade.id == "42"
    assert trade.time == "09:30"
    assert trade.result == "LOSS"
    assert trade.entry_price == 18000.25
    assert trade.exit_price is None
    assert trade.r_multiple == -1.0
    assert trade.mfe is None
    assert trade.mae is None
    assert trade.notes == ""
    assert trade.conditions == frozenset({"VWAP"})


def test_from_record_requires_date_and_time() -> None:
    with pytest.raises(ValueError):
        Trade.from_record({"time": "09:30", "symbol": "MES"})
    with pytest.raises(ValueError):
        Trade.from_record({"date": "2024-03-04", "time": "", "symbol": "MES"})


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("date", "2024-02-30"),
        ("date", "03/04/2024"),
        ("time", "half past nine"),
        ("time", "24:00"),
        ("time", "09:75"),
    ],
)
def test_from_record_rejects_unparseable_date_or_time(field, value) -> None:
    record = {"date": "2024-03-04", "time": "09:30", "symbol": "MES", field: value}

    with pytest.raises(ValueError):
        Trade.from_record(record)


def test_from_record_pads_short_hour() -> None:
    trade = Trade.from_record({"date": "2024-03-04", "time": "9:05", "symbol": "MES"})

    assert trade.time == "09:05"


def test_from_record_rejects_unknown_result() -> None:
    with pytest.raises(ValueError):
        Trade.from_record({"date": "2024-03-04", "time": "09:30", "result": "SCRATCH"})


def test_to_record_writes_conditions_map() -> None:
    trade = Trade(date="2024-03-04", time="09:30", symbol="MES", conditions=frozenset({"VWAP", "Gap Up"}))

    record = trade.to_record()

    assert record["conditions"] == {"Gap Up": True, "VWAP": True}
    assert "id" not in record
    assert Trade.from_record(record) == trade


def test_new_trade_defaults() -> None:
    trade = Trade.new(now=datetime(2024, 3, 4, 9, 5))

    assert (trade.date, trade.time, trade.symbol, trade.result) == ("2024-03-04", "09:05", "MES", "WIN")
    assert trade.model == ""
    assert trade.r_multiple is None
    assert trade.conditions == frozenset()


def test_with_changes_normalizes_fields(make_trade) -> None:
    trade = make_trade(r_multiple=1)

    updated = trade.with_changes(r_multiple="", conditions="VWAP, News")

    assert updated.r_multiple is None
    assert updated.conditions == frozenset({"VWAP", "News"})
    assert trade.r_multiple == 1.0


def test_parse_conditions_shapes() -> None:
    assert parse_conditions(None) == frozenset()
    assert parse_conditions({"A": True, "B": False, " C ": True}) == frozenset({"A", "C"})
    assert parse_conditions(["A", " ", "B"]) == frozenset({"A", "B"})
    assert parse_conditions("A, B,,") == frozenset({"A", "B"})
    with pytest.raises(ValueError):
        parse_conditions(3)


def test_toggle_condition() -> None:
    tags = toggle_condition([], " VWAP ")
    assert tags == frozenset({"VWAP"})
    assert toggle_condition(tags, "VWAP") == frozenset()
    assert toggle_condition(tags, "  ") == tags


def test_filter_trades(make_trade) -> None:
    trades = [
        make_trade(date="2024-03-01", symbol="MES", model="Breakout"),
        make_trade(date="2024-03-04", symbol="MNQ", model="Breakout"),
        make_trade(date="2024-03-08", symbol="MES", model="Reversal"),
    ]

    assert filter_trades(trades, None) == trades
    assert filter_trades(trades, TradeFilter()) == trades
    window = TradeFilter(start_date="2024-03-04", end_date="2024-03-08")
    assert [t.date for t in filter_trades(trades, window)] == ["2024-03-04", "2024-03-08"]
    assert len(filter_trades(trades, TradeFilter(symbol="MES"))) == 2
    assert len(filter_trades(trades, TradeFilter(symbol="MES", model="Reversal"))) == 1


def test_filter_from_params_drops_bad_dates() -> None:
    trade_filter = TradeFilter.from_params({"start": "2024-03-04", "end": "yesterday", "symbol": " MES "})

    assert trade_filter == TradeFilter(start_date="2024-03-04", end_date="", symbol="MES", model="")
