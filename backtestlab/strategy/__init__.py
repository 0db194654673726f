from backtestlab.strategy.base import ParameterSpec, StrategyDefinition
from backtestlab.strategy.registry import StrategyRegistry, default_registry
from backtestlab.strategy.signals import generate_signals

__all__ = [
    "ParameterSpec",
    "StrategyDefinition",
    "StrategyRegistry",
    "default_registry",
    "generate_signals",
]
