"""Strategy definitions: parameter declarations plus a signal generator."""
from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from backtestlab.core.exceptions import ConfigurationError
from backtestlab.core.types import ParamValue, PriceBar, Signal, StrategyType

Params = dict[str, ParamValue]
SignalGenerator = Callable[[Sequence[PriceBar], Params], list[Signal]]


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """Declared strategy parameter with its default and valid range."""

    name: str
    default: ParamValue
    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False
    choices: tuple[str, ...] = ()

    def coerce(self, value: object, strategy: str) -> ParamValue:
        if self.choices:
            if not isinstance(value, str) or value.upper() not in self.choices:
                raise ConfigurationError(
                    f"{self.name} must be one of {', '.join(self.choices)}, got {value!r}",
                    strategy=strategy,
                )
            return value.upper()

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"{self.name} must be numeric, got {value!r}", strategy=strategy)
        if not math.isfinite(value):
            raise ConfigurationError(f"{self.name} must be finite", strategy=strategy)

        if self.integer:
            if float(value) != int(value):
                raise ConfigurationError(
                    f"{self.name} must be an integer, got {value!r}", strategy=strategy
                )
            value = int(value)
        else:
            value = float(value)

        if self.minimum is not None and value < self.minimum:
            raise ConfigurationError(
                f"{self.name} must be >= {self.minimum}, got {value}", strategy=strategy
            )
        if self.maximum is not None and value > self.maximum:
            raise ConfigurationError(
                f"{self.name} must be <= {self.maximum}, got {value}", strategy=strategy
            )
        return value


@dataclass(frozen=True)
class StrategyDefinition:
    """One strategy variant: its parameters, generator and warmup rule.

    ``consistency`` receives resolved parameters and returns an error message
    when they contradict each other. ``warmup`` returns the index of the first
    bar on which the generator can emit anything other than HOLD.
    """

    type: StrategyType
    parameters: tuple[ParameterSpec, ...]
    generator: SignalGenerator
    warmup: Callable[[Params], int]
    consistency: Callable[[Params], str | None] | None = None
    label: str | None = None
    description: str | None = None

    @property
    def display_label(self) -> str:
        return self.label or self.type.label

    @property
    def display_description(self) -> str:
        return self.description or self.type.description

    def defaults(self) -> Params:
        return {p.name: p.default for p in self.parameters}

    def resolve(self, parameters: Mapping[str, object] | None) -> Params:
        """Merge ``parameters`` over the defaults and validate the result."""
        strategy = self.type.value
        known = {p.name: p for p in self.parameters}
        supplied = dict(parameters or {})

        unknown = sorted(set(supplied) - set(known))
        if unknown:
            raise ConfigurationError(f"unknown parameter(s): {', '.join(unknown)}", strategy=strategy)

        resolved: Params = {}
        for name, spec in known.items():
            resolved[name] = spec.coerce(supplied[name], strategy) if name in supplied else spec.default

        if self.consistency is not None:
            problem = self.consistency(resolved)
            if problem:
                raise ConfigurationError(problem, strategy=strategy)
        return resolved

    def warmup_bars(self, parameters: Mapping[str, object] | None = None) -> int:
        return self.warmup(self.resolve(parameters))

    def generate(self, bars: Sequence[PriceBar], parameters: Mapping[str, object] | None) -> list[Signal]:
        return self.generator(bars, self.resolve(parameters))

    def describe(self) -> dict:
        """Catalogue entry as served by the strategies endpoint."""
        return {
            "type": self.type.value,
            "label": self.display_label,
            "description": self.display_description,
            "parameters": self.defaults(),
        }


def crossover_signals(
    fast: Sequence[float | None], slow: Sequence[float | None]
) -> list[Signal]:
    """ENTER_LONG when ``fast`` crosses above ``slow``, EXIT on the cross below."""
    signals = [Signal.HOLD] * len(fast)
    for i in range(1, len(fast)):
        prev_fast, prev_slow = fast[i - 1], slow[i - 1]
        cur_fast, cur_slow = fast[i], slow[i]
        if None in (prev_fast, prev_slow, cur_fast, cur_slow):
            continue
        if prev_fast <= prev_slow and cur_fast > cur_slow:
            signals[i] = Signal.ENTER_LONG
        elif prev_fast >= prev_slow and cur_fast < cur_slow:
            signals[i] = Signal.EXIT
    return signals


def threshold_signals(
    values: Sequence[float | None], enter_above: float, exit_below: float
) -> list[Signal]:
    """ENTER_LONG when ``values`` crosses above ``enter_above``, EXIT when it crosses below ``exit_below``."""
    signals = [Signal.HOLD] * len(values)
    for i in range(1, len(values)):
        prev, cur = values[i - 1], values[i]
        if prev is None or cur is None:
            continue
        if prev <= enter_above < cur:
            signals[i] = Signal.ENTER_LONG
        elif prev >= exit_below > cur:
            signals[i] = Signal.EXIT
    return signals


def closes(bars: Sequence[PriceBar]) -> list[float]:
    return [b.close for b in bars]
