"""Trailing return momentum strategy."""
from __future__ import annotations

from collections.abc import Sequence

from backtestlab.core.types import PriceBar, Signal, StrategyType
from backtestlab.indicators import momentum_series
from backtestlab.strategy.base import (
    ParameterSpec,
    Params,
    StrategyDefinition,
    closes,
    threshold_signals,
)


def generate(bars: Sequence[PriceBar], params: Params) -> list[Signal]:
    """Enter when momentum (%) crosses above entryThreshold, exit when it crosses below exitThreshold."""
    momentum = momentum_series(closes(bars), params["period"])
    return threshold_signals(momentum, params["entryThreshold"], params["exitThreshold"])


DEFINITION = StrategyDefinition(
    type=StrategyType.MOMENTUM,
    parameters=(
        ParameterSpec("period", 20, minimum=1, maximum=500, integer=True),
        ParameterSpec("entryThreshold", 0.0, minimum=-100, maximum=1000),
        ParameterSpec("exitThreshold", 0.0, minimum=-100, maximum=1000),
    ),
    generator=generate,
    warmup=lambda p: p["period"] + 1,
)
