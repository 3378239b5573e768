from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from rjournal.metrics.coerce import num, win_rate
from rjournal.models import Trade

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
TRADING_DAYS = WEEKDAY_NAMES[:5]


@dataclass(frozen=True)
class TimeBucket:
    name: str
    value: float
    count: int
    win_rate: float


@dataclass(frozen=True)
class EquityPoint:
    date: str
    r: float


@dataclass(frozen=True)
class TimeMetrics:
    hourly_data: list[TimeBucket]
    day_data: list[TimeBucket]
    equity_curve: list[EquityPoint]


@dataclass
class _Bucket:
    total_r: float = 0.0
    count: int = 0
    wins: int = 0

    def add(self, r_value: float) -> None:
        self.total_r += r_value
        self.count += 1
        if r_value > 0:
            self.wins += 1

    def summary(self, name: str) -> TimeBucket:
        return TimeBucket(
            name=name,
            value=self.total_r,
            count=self.count,
            win_rate=win_rate(self.wins, self.count),
        )


def compute_time_metrics(trades: Iterable[Trade]) -> TimeMetrics:
    trade_list = list(trades)
    hourly: dict[int, _Bucket] = {}
    daily: dict[str, _Bucket] = {}
    for trade in trade_list:
        r_value = num(trade.r_multiple)
        hourly.setdefault(trade_hour(trade.time), _Bucket()).add(r_value)
        daily.setdefault(weekday_name(trade.date), _Bucket()).add(r_value)

    hourly_data = [bucket.summary(f"{hour}:00") for hour, bucket in sorted(hourly.items())]
    # Always Mon..Fri, zero-filled; weekend trades have no bucket.
    day_data = [daily.get(day, _Bucket()).summary(day) for day in TRADING_DAYS]
    return TimeMetrics(
        hourly_data=hourly_data,
        day_data=day_data,
        equity_curve=compute_equity_curve(trade_list),
    )


def compute_equity_curve(trades: Iterable[Trade]) -> list[EquityPoint]:
    ordered = sorted(trades, key=trade_instant)
    cumulative = 0.0
    points: list[EquityPoint] = []
    for trade in ordered:
        cumulative += num(trade.r_multiple)
        points.append(EquityPoint(date=trade.date, r=cumulative))
    return points


def trade_hour(value: str) -> int:
    return int(value.split(":")[0])


def weekday_name(value: str) -> str:
    # Built from the calendar parts so no timezone can shift the day.
    year, month, day = (int(part) for part in value.split("-"))
    return WEEKDAY_NAMES[date(year, month, day).weekday()]


def trade_instant(trade: Trade) -> datetime:
    return datetime.fromisoformat(f"{trade.date}T{trade.time}")
