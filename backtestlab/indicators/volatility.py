from __future__ import annotations

import math
from collections.abc import Sequence
from typing import NamedTuple


class Band(NamedTuple):
    upper: float
    middle: float
    lower: float


def bollinger_series(
    closes: Sequence[float], period: int = 20, num_std: float = 2.0
) -> list[Band | None]:
    """SMA(period) +/- num_std population standard deviations."""
    result: list[Band | None] = [None] * len(closes)
    for i in range(period - 1, len(closes)):
        window = closes[i - period + 1 : i + 1]
        middle = sum(window) / period
        variance = sum((c - middle) ** 2 for c in window) / period
        stdev = math.sqrt(variance)
        result[i] = Band(
            upper=middle + num_std * stdev,
            middle=middle,
            lower=middle - num_std * stdev,
        )
    return result
