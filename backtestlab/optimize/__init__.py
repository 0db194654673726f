from backtestlab.optimize.grid import ParameterRange, count_combinations, expand_grid
from backtestlab.optimize.optimizer import (
    CancellationToken,
    FailedCombination,
    OptimizationRequest,
    OptimizationResult,
    OptimizationTarget,
    Optimizer,
)

__all__ = [
    "CancellationToken",
    "FailedCombination",
    "OptimizationRequest",
    "OptimizationResult",
    "OptimizationTarget",
    "Optimizer",
    "ParameterRange",
    "count_combinations",
    "expand_grid",
]
