from __future__ import annotations

from collections.abc import Sequence


def rsi_series(closes: Sequence[float], period: int = 14) -> list[float | None]:
    """Wilder-smoothed RSI; the first value appears at index ``period``."""
    result: list[float | None] = [None] * len(closes)
    if len(closes) <= period:
        return result

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [d if d > 0 else 0.0 for d in deltas]
    losses = [-d if d < 0 else 0.0 for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    result[period] = _rsi(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i + 1] = _rsi(avg_gain, avg_loss)
    return result


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # A series that never moved is neutral, not overbought
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def momentum_series(closes: Sequence[float], period: int) -> list[float | None]:
    """Trailing return over ``period`` bars, in percent."""
    result: list[float | None] = [None] * len(closes)
    for i in range(period, len(closes)):
        result[i] = (closes[i] / closes[i - period] - 1.0) * 100.0
    return result
