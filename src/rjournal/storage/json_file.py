from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from rjournal.models import Trade


@dataclass(frozen=True)
class LoadResult:
    trades: list[Trade]
    skipped: int = 0


def load_trades(path: str | Path) -> LoadResult:
    source_path = Path(path)
    if source_path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported file type: {source_path.suffix}")
    with source_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return load_trades_payload(payload)


def load_trades_payload(payload: Any) -> LoadResult:
    trades: list[Trade] = []
    skipped = 0
    for record in _extract_records(payload):
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        try:
            trades.append(Trade.from_record(record))
        except ValueError:
            skipped += 1
    return LoadResult(trades=trades, skipped=skipped)


def write_trades(path: str | Path, trades: Iterable[Trade]) -> int:
    records = [trade.to_record() for trade in trades]
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(records, indent=2) + "\n", encoding="utf-8")
    return len(records)


def _extract_records(payload: Any) -> list[Any]:
    if isinstance(payload, Mapping):
        for key in ("trades", "data"):
            value = payload.get(key)
            if isinstance(value, list):
                payload = value
                break
        else:
            return [payload]
    if not isinstance(payload, list):
        raise ValueError("Expected a list of trade records.")
    return payload
