"""Bollinger band mean-reversion strategy.

Enters when the close crosses below the lower band and exits when it crosses
above the upper band. The middle band is not an exit trigger.
"""
from __future__ import annotations

from collections.abc import Sequence

from backtestlab.core.types import PriceBar, Signal, StrategyType
from backtestlab.indicators import bollinger_series
from backtestlab.strategy.base import ParameterSpec, Params, StrategyDefinition, closes


def generate(bars: Sequence[PriceBar], params: Params) -> list[Signal]:
    prices = closes(bars)
    bands = bollinger_series(prices, params["period"], params["stdDevMultiplier"])

    signals = [Signal.HOLD] * len(bars)
    for i in range(1, len(bands)):
        prev_band, band = bands[i - 1], bands[i]
        if prev_band is None or band is None:
            continue
        if prices[i - 1] >= prev_band.lower and prices[i] < band.lower:
            signals[i] = Signal.ENTER_LONG
        elif prices[i - 1] <= prev_band.upper and prices[i] > band.upper:
            signals[i] = Signal.EXIT
    return signals


DEFINITION = StrategyDefinition(
    type=StrategyType.BOLLINGER_BAND,
    parameters=(
        ParameterSpec("period", 20, minimum=2, maximum=500, integer=True),
        ParameterSpec("stdDevMultiplier", 2.0, minimum=0.1, maximum=10),
    ),
    generator=generate,
    warmup=lambda p: p["period"],
)
