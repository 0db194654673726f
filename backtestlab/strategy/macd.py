"""MACD / signal line crossover strategy."""
from __future__ import annotations

from collections.abc import Sequence

from backtestlab.core.types import PriceBar, Signal, StrategyType
from backtestlab.indicators import macd_series
from backtestlab.strategy.base import (
    ParameterSpec,
    Params,
    StrategyDefinition,
    closes,
    crossover_signals,
)


def generate(bars: Sequence[PriceBar], params: Params) -> list[Signal]:
    macd, signal = macd_series(
        closes(bars), params["fastPeriod"], params["slowPeriod"], params["signalPeriod"]
    )
    return crossover_signals(macd, signal)


def _check(params: Params) -> str | None:
    if params["fastPeriod"] >= params["slowPeriod"]:
        return "fastPeriod must be less than slowPeriod"
    return None


DEFINITION = StrategyDefinition(
    type=StrategyType.MACD,
    parameters=(
        ParameterSpec("fastPeriod", 12, minimum=1, maximum=200, integer=True),
        ParameterSpec("slowPeriod", 26, minimum=2, maximum=500, integer=True),
        ParameterSpec("signalPeriod", 9, minimum=1, maximum=200, integer=True),
    ),
    generator=generate,
    # signal line starts at slow + signal - 2; a cross needs one more bar
    warmup=lambda p: p["slowPeriod"] + p["signalPeriod"] - 1,
    consistency=_check,
)
