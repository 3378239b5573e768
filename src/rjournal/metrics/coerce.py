from __future__ import annotations

import math
import re
from typing import Any

# Longest numeric prefix, so "1.5R" reads as 1.5.
_LEADING_NUMBER = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def num(value: Any) -> float:
    """Coerce a stored numeric field to a float for aggregation.

    Missing values (``None`` or ``""``) and strings with no leading number
    count as zero, so a trade with no MFE recorded contributes nothing to sums.
    """
    if not value:
        return 0.0
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(value.strip())
        if match is None:
            return 0.0
        number = float(match.group(0))
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    if math.isnan(number):
        return 0.0
    return number


def win_rate(wins: int, count: int) -> float:
    return wins / count * 100.0 if count else 0.0


def mean(values: list[float]) -> float:
    return sum(values) / max(1, len(values))
