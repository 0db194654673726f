"""Performance metrics for a simulated run.

Pure functions of the trade log and equity curve. Ratios whose denominator is
zero resolve to ``0.0`` or ``None`` and never to NaN or infinity:

- Sharpe is ``0.0`` with fewer than two daily returns or zero volatility.
- Sortino is ``0.0`` when equity never moves and ``None`` when it never fell.
- Calmar is ``None`` without a drawdown.
- Profit factor is ``None`` without losing trades.
"""
from __future__ import annotations

import math
import sys
from collections.abc import Sequence
from dataclasses import asdict, dataclass

from backtestlab.core.types import EquityPoint, Trade

TRADING_DAYS_PER_YEAR = 252


@dataclass(frozen=True, slots=True)
class PerformanceMetrics:
    final_capital: float
    total_return: float
    cagr: float
    max_drawdown: float
    sharpe_ratio: float
    sortino_ratio: float | None
    calmar_ratio: float | None
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    avg_win: float
    avg_loss: float
    profit_factor: float | None
    max_win_streak: int
    max_loss_streak: int
    avg_holding_days: float
    total_profit: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class MonthlyPerformance:
    month: str
    return_pct: float
    trades: int
    profit: float


def calculate_metrics(
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    initial_capital: float,
    period_days: int,
) -> PerformanceMetrics:
    final_capital = equity_curve[-1].equity_value if equity_curve else initial_capital
    total_return = (final_capital / initial_capital - 1) * 100
    cagr = _cagr(initial_capital, final_capital, period_days)
    max_drawdown = abs(min((p.drawdown for p in equity_curve), default=0.0))

    equity_values = [p.equity_value for p in equity_curve]
    daily_returns = [
        equity_values[i] / equity_values[i - 1] - 1
        for i in range(1, len(equity_values))
        if equity_values[i - 1] > 0
    ]

    profits = [t.profit for t in trades]
    wins = [p for p in profits if p > 0]
    losses = [p for p in profits if p <= 0]
    total_losses = abs(sum(losses))
    win_streak, loss_streak = _streaks(profits)

    return PerformanceMetrics(
        final_capital=final_capital,
        total_return=total_return,
        cagr=cagr,
        max_drawdown=max_drawdown,
        sharpe_ratio=_sharpe(daily_returns),
        sortino_ratio=_sortino(daily_returns),
        calmar_ratio=cagr / max_drawdown if max_drawdown > 0 else None,
        total_trades=len(trades),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=len(wins) / len(trades) * 100 if trades else 0.0,
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=total_losses / len(losses) if losses else 0.0,
        profit_factor=sum(wins) / total_losses if total_losses > 0 else None,
        max_win_streak=win_streak,
        max_loss_streak=loss_streak,
        avg_holding_days=sum(t.holding_days for t in trades) / len(trades) if trades else 0.0,
        total_profit=sum(profits),
    )


def monthly_performance(
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    initial_capital: float,
) -> list[MonthlyPerformance]:
    """Per calendar month: return from month-end equity plus exits in that month."""
    month_end: dict[str, float] = {}
    for point in equity_curve:
        month_end[point.date.strftime("%Y-%m")] = point.equity_value

    trade_count: dict[str, int] = {}
    trade_profit: dict[str, float] = {}
    for trade in trades:
        key = trade.exit_date.strftime("%Y-%m")
        trade_count[key] = trade_count.get(key, 0) + 1
        trade_profit[key] = trade_profit.get(key, 0.0) + trade.profit

    result: list[MonthlyPerformance] = []
    previous = initial_capital
    for month, equity in month_end.items():
        result.append(MonthlyPerformance(
            month=month,
            return_pct=(equity / previous - 1) * 100 if previous > 0 else 0.0,
            trades=trade_count.get(month, 0),
            profit=trade_profit.get(month, 0.0),
        ))
        previous = equity
    return result


def _cagr(initial: float, final: float, period_days: int) -> float:
    if period_days <= 0 or initial <= 0:
        return 0.0
    if final <= 0:
        return -100.0
    try:
        growth = (final / initial) ** (365 / period_days)
    except OverflowError:
        # Very short windows with large moves; report the largest finite value
        return sys.float_info.max
    return min((growth - 1) * 100, sys.float_info.max)


def _sharpe(returns: Sequence[float]) -> float:
    if len(returns) < 2:
        return 0.0
    mean_r = sum(returns) / len(returns)
    std_r = math.sqrt(sum((r - mean_r) ** 2 for r in returns) / len(returns))
    if std_r == 0:
        return 0.0
    return mean_r / std_r * math.sqrt(TRADING_DAYS_PER_YEAR)


def _sortino(returns: Sequence[float]) -> float | None:
    if not any(returns):
        return 0.0
    downside_sq = [r**2 for r in returns if r < 0]
    if not downside_sq:
        return None
    mean_r = sum(returns) / len(returns)
    downside_std = math.sqrt(sum(downside_sq) / len(downside_sq))
    return mean_r / downside_std * math.sqrt(TRADING_DAYS_PER_YEAR)


def _streaks(profits: Sequence[float]) -> tuple[int, int]:
    """Longest runs of winning (> 0) and non-winning trades, in order."""
    max_win = max_loss = win = loss = 0
    for profit in profits:
        if profit > 0:
            win, loss = win + 1, 0
        else:
            win, loss = 0, loss + 1
        max_win = max(max_win, win)
        max_loss = max(max_loss, loss)
    return max_win, max_loss
