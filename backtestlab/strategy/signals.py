from __future__ import annotations

import logging
from collections.abc import Sequence

from backtestlab.core.types import PriceBar, Signal, StrategySpec
from backtestlab.strategy.registry import StrategyRegistry, default_registry

logger = logging.getLogger(__name__)

_DEFAULT_REGISTRY = default_registry()


def generate_signals(
    bars: Sequence[PriceBar],
    spec: StrategySpec,
    registry: StrategyRegistry | None = None,
) -> list[Signal]:
    """Produce one signal per bar for ``spec``.

    ``signals[i]`` depends only on ``bars[0..i]``. Indices without enough
    history are HOLD.

    Raises:
        ConfigurationError: Unregistered strategy type or invalid parameters.
    """
    definition = (registry or _DEFAULT_REGISTRY).require(spec.type)
    signals = definition.generate(bars, spec.parameters)
    logger.debug(
        "%s generated %d signals (%d entries, %d exits)",
        spec.type.value,
        len(signals),
        signals.count(Signal.ENTER_LONG),
        signals.count(Signal.EXIT),
    )
    return signals
