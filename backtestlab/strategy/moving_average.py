"""Moving average crossover strategy."""
from __future__ import annotations

from collections.abc import Sequence

from backtestlab.core.types import PriceBar, Signal, StrategyType
from backtestlab.indicators import ema_series, sma_series
from backtestlab.strategy.base import (
    ParameterSpec,
    Params,
    StrategyDefinition,
    closes,
    crossover_signals,
)


def generate(bars: Sequence[PriceBar], params: Params) -> list[Signal]:
    """Golden cross enters, death cross exits."""
    average = ema_series if params["maType"] == "EMA" else sma_series
    prices = closes(bars)
    short_ma = average(prices, params["shortPeriod"])
    long_ma = average(prices, params["longPeriod"])
    return crossover_signals(short_ma, long_ma)


def _check(params: Params) -> str | None:
    if params["shortPeriod"] >= params["longPeriod"]:
        return "shortPeriod must be less than longPeriod"
    return None


DEFINITION = StrategyDefinition(
    type=StrategyType.MOVING_AVERAGE,
    parameters=(
        ParameterSpec("shortPeriod", 20, minimum=1, maximum=500, integer=True),
        ParameterSpec("longPeriod", 60, minimum=2, maximum=1000, integer=True),
        ParameterSpec("maType", "SMA", choices=("SMA", "EMA")),
    ),
    generator=generate,
    warmup=lambda p: p["longPeriod"],
    consistency=_check,
)
