"""RSI rebound strategy.

Entry and exit both trigger on the bar where RSI comes back inside the
oversold/overbought band, not while it sits outside it:

- ENTER_LONG: RSI was below ``oversoldLevel`` on the previous bar and is at or
  above it now.
- EXIT: RSI was above ``overboughtLevel`` on the previous bar and is at or
  below it now.
"""
from __future__ import annotations

from collections.abc import Sequence

from backtestlab.core.types import PriceBar, Signal, StrategyType
from backtestlab.indicators import rsi_series
from backtestlab.strategy.base import ParameterSpec, Params, StrategyDefinition, closes


def generate(bars: Sequence[PriceBar], params: Params) -> list[Signal]:
    oversold = params["oversoldLevel"]
    overbought = params["overboughtLevel"]
    rsi = rsi_series(closes(bars), params["period"])

    signals = [Signal.HOLD] * len(bars)
    for i in range(1, len(rsi)):
        prev, cur = rsi[i - 1], rsi[i]
        if prev is None or cur is None:
            continue
        if prev < oversold <= cur:
            signals[i] = Signal.ENTER_LONG
        elif prev > overbought >= cur:
            signals[i] = Signal.EXIT
    return signals


def _check(params: Params) -> str | None:
    if params["oversoldLevel"] >= params["overboughtLevel"]:
        return "oversoldLevel must be less than overboughtLevel"
    return None


DEFINITION = StrategyDefinition(
    type=StrategyType.RSI,
    parameters=(
        ParameterSpec("period", 14, minimum=2, maximum=200, integer=True),
        ParameterSpec("oversoldLevel", 30.0, minimum=0, maximum=100),
        ParameterSpec("overboughtLevel", 70.0, minimum=0, maximum=100),
    ),
    generator=generate,
    warmup=lambda p: p["period"] + 1,
    consistency=_check,
)
