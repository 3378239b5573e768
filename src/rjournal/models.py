from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Iterable, Mapping

RESULTS = ("WIN", "LOSS", "BE")
DEFAULT_SYMBOLS = ("MES", "MNQ")
DEFAULT_MODELS = ("Breakout", "Reversal", "Mean Reversion", "Trend Pullback")
PRESET_CONDITIONS = ("HR Open", "VWAP", "Gap Up", "Gap Down", "News", "Counter Trend")

NUMERIC_FIELDS = ("entry_price", "exit_price", "r_multiple", "mfe", "mae")


@dataclass(frozen=True)
class Trade:
    date: str
    time: str
    symbol: str
    model: str = ""
    result: str = "WIN"
    entry_price: float | None = None
    exit_price: float | None = None
    r_multiple: float | None = None
    mfe: float | None = None
    mae: float | None = None
    notes: str = ""
    conditions: frozenset[str] = field(default_factory=frozenset)
    id: str | None = None

    @classmethod
    def new(
        cls,
        *,
        symbol: str = DEFAULT_SYMBOLS[0],
        now: datetime | None = None,
        **fields: Any,
    ) -> "Trade":
        now = now or datetime.now()
        fields.setdefault("date", now.date().isoformat())
        fields.setdefault("time", now.strftime("%H:%M"))
        return cls(symbol=symbol, **fields)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Trade":
        trade_date = _normalize_date(_required_text(record, "date"))
        trade_time = _normalize_time(_required_text(record, "time"))
        result = str(record.get("result") or "WIN").strip().upper()
        if result not in RESULTS:
            raise ValueError(f"Unknown trade result: {record.get('result')!r}")
        trade_id = record.get("id")
        return cls(
            id=str(trade_id) if trade_id not in (None, "") else None,
            date=trade_date,
            time=trade_time,
            symbol=str(record.get("symbol") or "").strip(),
            model=str(record.get("model") or "").strip(),
            result=result,
            entry_price=_optional_float(record.get("entry_price")),
            exit_price=_optional_float(record.get("exit_price")),
            r_multiple=_optional_float(record.get("r_multiple")),
            mfe=_optional_float(record.get("mfe")),
            mae=_optional_float(record.get("mae")),
            notes=str(record.get("notes") or ""),
            conditions=parse_conditions(record.get("conditions")),
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "date": self.date,
            "time": self.time,
            "symbol": self.symbol,
            "model": self.model,
            "result": self.result,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "r_multiple": self.r_multiple,
            "mfe": self.mfe,
            "mae": self.mae,
            "notes": self.notes,
            "conditions": {tag: True for tag in sorted(self.conditions)},
        }
        if self.id is not None:
            record["id"] = self.id
        return record

    def with_changes(self, **fields: Any) -> "Trade":
        if "conditions" in fields:
            fields["conditions"] = parse_conditions(fields["conditions"])
        for name in NUMERIC_FIELDS:
            if name in fields:
                fields[name] = _optional_float(fields[name])
        return replace(self, **fields)


@dataclass(frozen=True)
class TradeFilter:
    start_date: str = ""
    end_date: str = ""
    symbol: str = ""
    model: str = ""

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "TradeFilter":
        return cls(
            start_date=_iso_date_or_empty(params.get("start")),
            end_date=_iso_date_or_empty(params.get("end")),
            symbol=str(params.get("symbol") or "").strip(),
            model=str(params.get("model") or "").strip(),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.start_date or self.end_date or self.symbol or self.model)

    def matches(self, trade: Trade) -> bool:
        if self.start_date and trade.date < self.start_date:
            return False
        if self.end_date and trade.date > self.end_date:
            return False
        if self.symbol and trade.symbol != self.symbol:
            return False
        if self.model and trade.model != self.model:
            return False
        return True


def filter_trades(trades: Iterable[Trade], trade_filter: TradeFilter | None) -> list[Trade]:
    if trade_filter is None or trade_filter.is_empty:
        return list(trades)
    return [trade for trade in trades if trade_filter.matches(trade)]


def parse_conditions(value: Any) -> frozenset[str]:
    """Normalize stored conditions into the set of active tags.

    The table keeps conditions as a JSON object of ``{tag: bool}``; only tags
    mapped to ``True`` are active. Lists, sets and comma-separated strings of
    tag names are accepted too.
    """
    if value is None or value == "":
        return frozenset()
    if isinstance(value, Mapping):
        tags = (str(key).strip() for key, flag in value.items() if flag)
    elif isinstance(value, str):
        tags = (part.strip() for part in value.split(","))
    elif isinstance(value, Iterable):
        tags = (str(item).strip() for item in value)
    else:
        raise ValueError(f"Unsupported conditions value: {value!r}")
    return frozenset(tag for tag in tags if tag)


def toggle_condition(conditions: Iterable[str], tag: str) -> frozenset[str]:
    current = frozenset(conditions)
    cleaned = tag.strip()
    if not cleaned:
        return current
    if cleaned in current:
        return current - {cleaned}
    return current | {cleaned}


def _required_text(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValueError(f"Trade record is missing '{key}'.")
    return text


def _normalize_date(value: str) -> str:
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as exc:
        raise ValueError(f"Trade date is not YYYY-MM-DD: {value!r}") from exc


def _normalize_time(value: str) -> str:
    # Postgres time columns come back as HH:MM:SS; form input may drop the hour padding.
    parts = value.split(":")
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts[:2]):
        raise ValueError(f"Trade time is not HH:MM: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        raise ValueError(f"Trade time is out of range: {value!r}")
    return f"{hour:02d}:{minute:02d}"


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def _iso_date_or_empty(value: Any) -> str:
    if not value:
        return ""
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        return ""
