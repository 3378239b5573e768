"""Shared fixtures for the rjournal test suite."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from rjournal.models import Trade

# 2024-03-04 is a Monday.
MONDAY = "2024-03-04"


@pytest.fixture
def make_trade() -> Callable[..., Trade]:
    """Build a trade from a stored-record shaped dict with sensible defaults."""

    def _make(**overrides: Any) -> Trade:
        record: dict[str, Any] = {
            "date": MONDAY,
            "time": "09:30",
            "symbol": "MES",
            "model": "Breakout",
            "result": "WIN",
            "r_multiple": "",
            "mfe": "",
            "mae": "",
            "notes": "",
            "conditions": {},
        }
        record.update(overrides)
        return Trade.from_record(record)

    return _make
