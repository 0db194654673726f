"""Single-position trade simulator.

Walks the bars once, holding at most one long position. Fills happen at the
bar close (adjusted by slippage) except stop-loss and take-profit exits,
which fill at their trigger price.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from backtestlab.core.exceptions import DataIntegrityError
from backtestlab.core.types import EquityPoint, ExitReason, PriceBar, Signal, Trade
from backtestlab.data.provider import validate_bars

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExecutionSettings:
    """Cost and risk assumptions applied by the simulator."""

    initial_capital: float
    position_size_percent: float = 100.0
    commission_rate: float = 0.0
    slippage: float = 0.0
    stop_loss_percent: float | None = None
    take_profit_percent: float | None = None


@dataclass(frozen=True, slots=True)
class _SimPosition:
    entry_index: int
    entry_price: float
    quantity: int
    entry_commission: float
    capital_at_entry: float
    stop_loss_price: float | None
    take_profit_price: float | None


@dataclass(frozen=True)
class SimulationResult:
    trades: tuple[Trade, ...]
    equity_curve: tuple[EquityPoint, ...]
    final_capital: float

    @property
    def drawdown_curve(self) -> list[float]:
        return [p.drawdown for p in self.equity_curve]

    @property
    def benchmark_curve(self) -> list[float]:
        return [p.benchmark_value for p in self.equity_curve]


class TradeSimulator:
    def __init__(self, settings: ExecutionSettings) -> None:
        self._settings = settings

    def run(
        self,
        bars: Sequence[PriceBar],
        signals: Sequence[Signal],
        symbol: str | None = None,
    ) -> SimulationResult:
        """Replay ``signals`` over ``bars``.

        Raises:
            DataIntegrityError: Malformed bars or a signal count that does not
                match the bar count.
        """
        validate_bars(bars, symbol)
        if len(signals) != len(bars):
            raise DataIntegrityError(
                f"got {len(signals)} signals for {len(bars)} bars", symbol=symbol
            )

        s = self._settings
        capital = s.initial_capital
        first_close = bars[0].close
        last_index = len(bars) - 1
        position: _SimPosition | None = None
        trades: list[Trade] = []
        curve: list[EquityPoint] = []
        peak = capital

        for i, bar in enumerate(bars):
            signal = signals[i]
            exited = False

            if position is not None and i > position.entry_index:
                exit_fill = self._check_exit(position, bar, signal)
                if exit_fill is not None:
                    exit_price, reason = exit_fill
                    trade = self._close(position, bars, i, exit_price, reason, len(trades) + 1)
                    trades.append(trade)
                    capital += trade.profit
                    position = None
                    exited = True

            if position is None and not exited and signal == Signal.ENTER_LONG:
                position = self._open(i, bar, capital)

            if position is not None and i == last_index:
                trade = self._close(
                    position, bars, i, bar.close, ExitReason.END_OF_DATA, len(trades) + 1, forced=True
                )
                trades.append(trade)
                capital += trade.profit
                position = None

            if position is None:
                equity = capital
            else:
                equity = position.capital_at_entry + position.quantity * (bar.close - position.entry_price)
            peak = max(peak, equity)
            drawdown = (equity - peak) / peak * 100 if peak > 0 else 0.0
            curve.append(EquityPoint(
                date=bar.date,
                equity_value=equity,
                benchmark_value=s.initial_capital * bar.close / first_close,
                drawdown=min(drawdown, 0.0),
            ))

        logger.debug("Simulated %d bars, %d trades, final capital %.2f", len(bars), len(trades), capital)
        return SimulationResult(trades=tuple(trades), equity_curve=tuple(curve), final_capital=capital)

    def _open(self, index: int, bar: PriceBar, capital: float) -> _SimPosition | None:
        s = self._settings
        entry_price = bar.close * (1 + s.slippage)
        quantity = math.floor(capital * s.position_size_percent / 100 / entry_price)
        if quantity <= 0:
            logger.debug("Skipping entry on %s: capital %.2f buys no shares", bar.date, capital)
            return None

        stop = entry_price * (1 - s.stop_loss_percent / 100) if s.stop_loss_percent is not None else None
        target = (
            entry_price * (1 + s.take_profit_percent / 100) if s.take_profit_percent is not None else None
        )
        return _SimPosition(
            entry_index=index,
            entry_price=entry_price,
            quantity=quantity,
            entry_commission=entry_price * quantity * s.commission_rate,
            capital_at_entry=capital,
            stop_loss_price=stop,
            take_profit_price=target,
        )

    def _check_exit(
        self, position: _SimPosition, bar: PriceBar, signal: Signal
    ) -> tuple[float, ExitReason] | None:
        # Stop-loss first, then take-profit, then the strategy's own exit
        if position.stop_loss_price is not None and bar.low <= position.stop_loss_price:
            return position.stop_loss_price, ExitReason.STOP_LOSS
        if position.take_profit_price is not None and bar.high >= position.take_profit_price:
            return position.take_profit_price, ExitReason.TAKE_PROFIT
        if signal == Signal.EXIT:
            return bar.close * (1 - self._settings.slippage), ExitReason.SIGNAL
        return None

    def _close(
        self,
        position: _SimPosition,
        bars: Sequence[PriceBar],
        index: int,
        exit_price: float,
        reason: ExitReason,
        trade_number: int,
        forced: bool = False,
    ) -> Trade:
        qty = position.quantity
        exit_commission = exit_price * qty * self._settings.commission_rate
        profit = (exit_price - position.entry_price) * qty - position.entry_commission - exit_commission
        entry_date = bars[position.entry_index].date
        exit_date = bars[index].date
        return Trade(
            trade_number=trade_number,
            entry_date=entry_date,
            exit_date=exit_date,
            entry_price=position.entry_price,
            exit_price=exit_price,
            quantity=qty,
            profit=profit,
            profit_percent=profit / (position.entry_price * qty) * 100,
            holding_days=(exit_date - entry_date).days,
            bars_held=index - position.entry_index,
            exit_reason=reason,
            forced_exit=forced,
        )


def simulate(
    bars: Sequence[PriceBar],
    signals: Sequence[Signal],
    settings: ExecutionSettings,
    symbol: str | None = None,
) -> SimulationResult:
    return TradeSimulator(settings).run(bars, signals, symbol)
