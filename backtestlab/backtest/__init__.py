from backtestlab.backtest.engine import BacktestEngine
from backtestlab.backtest.models import BacktestRequest, BacktestResult, parse_request
from backtestlab.backtest.simulator import ExecutionSettings, SimulationResult, TradeSimulator

__all__ = [
    "BacktestEngine",
    "BacktestRequest",
    "BacktestResult",
    "ExecutionSettings",
    "SimulationResult",
    "TradeSimulator",
    "parse_request",
]
