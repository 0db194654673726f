"""Shared value types for the backtest engine."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Signal(str, Enum):
    ENTER_LONG = "ENTER_LONG"
    EXIT = "EXIT"
    HOLD = "HOLD"


class StrategyType(str, Enum):
    """Supported strategy families, each carrying a label and description."""

    MOVING_AVERAGE = "MOVING_AVERAGE"
    RSI = "RSI"
    BOLLINGER_BAND = "BOLLINGER_BAND"
    MOMENTUM = "MOMENTUM"
    MACD = "MACD"
    CUSTOM = "CUSTOM"

    @property
    def label(self) -> str:
        return _STRATEGY_LABELS[self][0]

    @property
    def description(self) -> str:
        return _STRATEGY_LABELS[self][1]


_STRATEGY_LABELS: dict[StrategyType, tuple[str, str]] = {
    StrategyType.MOVING_AVERAGE: ("Moving Average", "Moving average crossover strategy"),
    StrategyType.RSI: ("RSI", "Relative strength index rebound strategy"),
    StrategyType.BOLLINGER_BAND: ("Bollinger Band", "Bollinger band mean-reversion strategy"),
    StrategyType.MOMENTUM: ("Momentum", "Trailing price momentum strategy"),
    StrategyType.MACD: ("MACD", "MACD / signal line crossover strategy"),
    StrategyType.CUSTOM: ("Custom", "User-registered strategy"),
}


class ExitReason(str, Enum):
    SIGNAL = "SIGNAL"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    END_OF_DATA = "END_OF_DATA"


ParamValue = int | float | str


class StrategySpec(BaseModel):
    """Tagged strategy variant: a type plus its parameter map."""

    model_config = ConfigDict(frozen=True)

    type: StrategyType
    parameters: dict[str, ParamValue] = Field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PriceBar:
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True, slots=True)
class Trade:
    """Closed round trip. ``forced_exit`` marks a position closed at series end."""

    trade_number: int
    entry_date: date
    exit_date: date
    entry_price: float
    exit_price: float
    quantity: int
    profit: float
    profit_percent: float
    holding_days: int
    bars_held: int
    exit_reason: ExitReason
    forced_exit: bool = False

    @property
    def is_win(self) -> bool:
        return self.profit > 0


@dataclass(frozen=True, slots=True)
class EquityPoint:
    date: date
    equity_value: float
    benchmark_value: float
    drawdown: float
