from __future__ import annotations

from collections.abc import Callable, Sequence

from backtestlab.core.exceptions import ConfigurationError
from backtestlab.core.types import StrategyType
from backtestlab.strategy import bollinger_band, macd, momentum, moving_average, rsi
from backtestlab.strategy.base import ParameterSpec, Params, SignalGenerator, StrategyDefinition

BUILTIN_DEFINITIONS: tuple[StrategyDefinition, ...] = (
    moving_average.DEFINITION,
    rsi.DEFINITION,
    bollinger_band.DEFINITION,
    momentum.DEFINITION,
    macd.DEFINITION,
)


class StrategyRegistry:
    """Signal generators keyed by strategy type."""

    def __init__(self, definitions: Sequence[StrategyDefinition] = ()) -> None:
        self._definitions: dict[StrategyType, StrategyDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: StrategyDefinition) -> None:
        if definition.type in self._definitions:
            raise ValueError(f"Strategy already registered: {definition.type.value}")
        self._definitions[definition.type] = definition

    def register_custom(
        self,
        generator: SignalGenerator,
        parameters: Sequence[ParameterSpec] = (),
        warmup: Callable[[Params], int] = lambda _: 1,
        label: str | None = None,
        description: str | None = None,
    ) -> StrategyDefinition:
        """Install the generator backing ``StrategyType.CUSTOM``."""
        definition = StrategyDefinition(
            type=StrategyType.CUSTOM,
            parameters=tuple(parameters),
            generator=generator,
            warmup=warmup,
            label=label,
            description=description,
        )
        self.register(definition)
        return definition

    def get(self, strategy_type: StrategyType | str) -> StrategyDefinition | None:
        try:
            key = StrategyType(strategy_type)
        except ValueError:
            return None
        return self._definitions.get(key)

    def require(self, strategy_type: StrategyType | str) -> StrategyDefinition:
        definition = self.get(strategy_type)
        if definition is None:
            name = strategy_type.value if isinstance(strategy_type, StrategyType) else str(strategy_type)
            raise ConfigurationError("no signal generator registered", strategy=name)
        return definition

    def all(self) -> list[StrategyDefinition]:
        return list(self._definitions.values())

    def catalogue(self) -> list[dict]:
        return [definition.describe() for definition in self._definitions.values()]


def default_registry() -> StrategyRegistry:
    """Fresh registry holding every built-in strategy (CUSTOM left unregistered)."""
    return StrategyRegistry(BUILTIN_DEFINITIONS)
