"""Parameter grid expansion.

A range ``{min, max, step}`` yields ``floor((max - min) / step) + 1`` values
starting at ``min``. Values are ints when both ``min`` and ``step`` are
integral, so integer strategy parameters survive the round trip.
"""
from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Mapping

from pydantic import BaseModel, ConfigDict

from backtestlab.core.exceptions import ValidationError

# Absorbs float error in (max - min) / step, e.g. (0.3 - 0.1) / 0.1
_EPSILON = 1e-9


class ParameterRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    step: float

    @property
    def integral(self) -> bool:
        return float(self.min).is_integer() and float(self.step).is_integer()

    def count(self) -> int:
        return math.floor((self.max - self.min) / self.step + _EPSILON) + 1

    def values(self) -> list[int | float]:
        if self.integral:
            start, step = int(self.min), int(self.step)
            return [start + k * step for k in range(self.count())]
        return [round(self.min + k * self.step, 10) for k in range(self.count())]


def validate_ranges(ranges: Mapping[str, ParameterRange]) -> None:
    """Raises ValidationError for an empty grid, a bad step or bound, or an unbounded count."""
    if not ranges:
        raise ValidationError("parameterRanges must name at least one parameter")
    for name, r in ranges.items():
        if not all(math.isfinite(v) for v in (r.min, r.max, r.step)):
            raise ValidationError(f"{name}: range bounds must be finite")
        if r.step <= 0:
            raise ValidationError(f"{name}: step must be positive, got {r.step}")
        if r.max < r.min:
            raise ValidationError(f"{name}: max ({r.max}) is below min ({r.min})")
        if not math.isfinite((r.max - r.min) / r.step):
            raise ValidationError(f"{name}: range has too many values")


def count_combinations(ranges: Mapping[str, ParameterRange]) -> int:
    validate_ranges(ranges)
    return math.prod(r.count() for r in ranges.values())


def expand_grid(ranges: Mapping[str, ParameterRange]) -> Iterator[dict[str, int | float]]:
    """Yield every combination; the last parameter varies fastest."""
    validate_ranges(ranges)
    names = list(ranges)
    for combo in itertools.product(*(ranges[name].values() for name in names)):
        yield dict(zip(names, combo))
