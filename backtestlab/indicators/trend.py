from __future__ import annotations

from collections.abc import Sequence

from backtestlab.indicators.moving_average import ema_series


def macd_series(
    closes: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[list[float | None], list[float | None]]:
    """Return the MACD line and its signal line, aligned with ``closes``.

    The MACD line starts at index ``slow_period - 1``; the signal line is an EMA
    of the defined part of the MACD line and starts ``signal_period - 1`` bars
    later.
    """
    fast = ema_series(closes, fast_period)
    slow = ema_series(closes, slow_period)
    macd: list[float | None] = [
        f - s if f is not None and s is not None else None for f, s in zip(fast, slow)
    ]

    signal: list[float | None] = [None] * len(closes)
    offset = slow_period - 1
    if offset < len(closes):
        defined = [m for m in macd[offset:] if m is not None]
        for i, value in enumerate(ema_series(defined, signal_period)):
            signal[offset + i] = value
    return macd, signal
