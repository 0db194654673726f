"""Shared fixtures: deterministic price series and result builders."""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from backtestlab.backtest.metrics import PerformanceMetrics
from backtestlab.backtest.models import BacktestResult
from backtestlab.core.types import PriceBar, StrategyType

START = date(2024, 1, 1)


def bars_from_closes(closes: list[float], start: date = START, spread: float = 0.5) -> list[PriceBar]:
    """One bar per consecutive calendar day; open = previous close."""
    bars = []
    prev = closes[0]
    for i, close in enumerate(closes):
        bars.append(PriceBar(
            date=start + timedelta(days=i),
            open=prev,
            high=max(prev, close) + spread,
            low=max(min(prev, close) - spread, 0.01),
            close=close,
            volume=1000.0,
        ))
        prev = close
    return bars


def wave_closes(n: int, base: float = 100.0, amplitude: float = 2.0, period: int = 20) -> list[float]:
    """Triangle wave: up for half a period, down for the other half."""
    half = period // 2
    closes = []
    for i in range(n):
        cycle = i % period
        offset = cycle if cycle < half else period - cycle
        closes.append(base + offset * amplitude)
    return closes


@pytest.fixture
def make_bars():
    return bars_from_closes


@pytest.fixture
def flat_bars():
    return bars_from_closes([100.0] * 60)


@pytest.fixture
def wave_bars():
    return bars_from_closes(wave_closes(200))


@pytest.fixture
def make_wave_closes():
    return wave_closes


_METRIC_DEFAULTS = {
    "final_capital": 10_000.0,
    "total_return": 0.0,
    "cagr": 0.0,
    "max_drawdown": 0.0,
    "sharpe_ratio": 0.0,
    "sortino_ratio": None,
    "calmar_ratio": None,
    "total_trades": 0,
    "winning_trades": 0,
    "losing_trades": 0,
    "win_rate": 0.0,
    "avg_win": 0.0,
    "avg_loss": 0.0,
    "profit_factor": None,
    "max_win_streak": 0,
    "max_loss_streak": 0,
    "avg_holding_days": 0.0,
    "total_profit": 0.0,
}


def result_with(strategy_type=StrategyType.MOVING_AVERAGE, symbol="TEST", **metrics) -> BacktestResult:
    """A BacktestResult carrying the given metric values and no trades."""
    return BacktestResult(
        symbol=symbol,
        strategy_type=strategy_type,
        parameters={},
        start_date=START,
        end_date=START + timedelta(days=30),
        initial_capital=10_000.0,
        metrics=PerformanceMetrics(**{**_METRIC_DEFAULTS, **metrics}),
        trades=(),
        equity_curve=(),
        monthly_performance=(),
    )


@pytest.fixture
def make_result():
    return result_with
