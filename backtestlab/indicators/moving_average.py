from __future__ import annotations

from collections.abc import Sequence


def sma_series(values: Sequence[float], period: int) -> list[float | None]:
    """Simple moving average, ``None`` until ``period`` values are available."""
    result: list[float | None] = [None] * len(values)
    for i in range(period - 1, len(values)):
        result[i] = sum(values[i - period + 1 : i + 1]) / period
    return result


def ema_series(values: Sequence[float], period: int) -> list[float | None]:
    """Exponential moving average seeded with the SMA of the first ``period`` values."""
    result: list[float | None] = [None] * len(values)
    if len(values) < period:
        return result
    multiplier = 2 / (period + 1)
    ema = sum(values[:period]) / period
    result[period - 1] = ema
    for i in range(period, len(values)):
        ema = (values[i] - ema) * multiplier + ema
        result[i] = ema
    return result
