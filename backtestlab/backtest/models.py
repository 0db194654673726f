"""Backtest request and result models.

Requests are pydantic models accepting the camelCase JSON used by the HTTP
layer (snake_case field names are accepted too). Results are plain frozen
dataclasses rendered back to camelCase by :meth:`BacktestResult.to_dict`.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from backtestlab.backtest.metrics import MonthlyPerformance, PerformanceMetrics
from backtestlab.backtest.simulator import ExecutionSettings
from backtestlab.core.exceptions import ConfigurationError, ValidationError
from backtestlab.core.types import EquityPoint, ParamValue, StrategySpec, StrategyType, Trade

ModelT = TypeVar("ModelT", bound=BaseModel)

_STRATEGY_TYPE_FIELDS = ("type", "strategyType", "strategy_type")


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ExecutionRequest(RequestModel):
    """Fields shared by single runs and optimizations."""

    symbol: str = Field(min_length=1)
    start_date: date
    end_date: date
    initial_capital: float = Field(gt=0)
    position_size_percent: float = Field(100.0, gt=0, le=100)
    commission_rate: float = Field(0.0, ge=0, lt=1)
    slippage: float = Field(0.0, ge=0, lt=1)
    stop_loss_percent: float | None = Field(None, ge=0, le=100)
    take_profit_percent: float | None = Field(None, ge=0)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be blank")
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> ExecutionRequest:
        if self.start_date >= self.end_date:
            raise ValueError("startDate must be before endDate")
        return self

    @property
    def period_days(self) -> int:
        return (self.end_date - self.start_date).days

    def execution_settings(self) -> ExecutionSettings:
        return ExecutionSettings(
            initial_capital=self.initial_capital,
            position_size_percent=self.position_size_percent,
            commission_rate=self.commission_rate,
            slippage=self.slippage,
            stop_loss_percent=self.stop_loss_percent,
            take_profit_percent=self.take_profit_percent,
        )


class BacktestRequest(ExecutionRequest):
    strategy: StrategySpec

    @model_validator(mode="before")
    @classmethod
    def accept_flat_strategy(cls, data: Any) -> Any:
        """Fold the flat ``strategyType``/``strategyParams`` form into ``strategy``."""
        if not isinstance(data, dict) or "strategy" in data:
            return data
        data = dict(data)
        for type_key, params_key in (("strategyType", "strategyParams"), ("strategy_type", "strategy_params")):
            if type_key in data:
                data["strategy"] = {
                    "type": data.pop(type_key),
                    "parameters": data.pop(params_key, None) or {},
                }
                break
        return data

    def with_parameters(self, parameters: Mapping[str, ParamValue]) -> BacktestRequest:
        strategy = StrategySpec(type=self.strategy.type, parameters=dict(parameters))
        return self.model_copy(update={"strategy": strategy})


def parse_model(model: type[ModelT], payload: Any) -> ModelT:
    """Validate ``payload`` into ``model``, raising the engine's ValidationError."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        for error in exc.errors():
            if error["loc"] and error["loc"][-1] in _STRATEGY_TYPE_FIELDS and error["type"] == "enum":
                raise ConfigurationError(
                    "unknown strategy type", strategy=str(error.get("input"))
                ) from exc
        raise ValidationError(format_errors(exc)) from exc


def format_errors(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "request"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def parse_request(payload: Any) -> BacktestRequest:
    return parse_model(BacktestRequest, payload)


@dataclass(frozen=True)
class BacktestResult:
    symbol: str
    strategy_type: StrategyType
    parameters: dict[str, ParamValue]
    start_date: date
    end_date: date
    initial_capital: float
    metrics: PerformanceMetrics
    trades: tuple[Trade, ...]
    equity_curve: tuple[EquityPoint, ...]
    monthly_performance: tuple[MonthlyPerformance, ...]
    execution_time_ms: int = 0

    @property
    def strategy_name(self) -> str:
        return self.strategy_type.label

    @property
    def final_capital(self) -> float:
        return self.metrics.final_capital

    def summary(self) -> dict:
        """Compact view used for optimizer rows and history listings."""
        m = self.metrics
        return {
            "symbol": self.symbol,
            "strategyType": self.strategy_type.value,
            "parameters": dict(self.parameters),
            "totalReturn": m.total_return,
            "cagr": m.cagr,
            "maxDrawdown": m.max_drawdown,
            "sharpeRatio": m.sharpe_ratio,
            "sortinoRatio": m.sortino_ratio,
            "calmarRatio": m.calmar_ratio,
            "profitFactor": m.profit_factor,
            "winRate": m.win_rate,
            "totalTrades": m.total_trades,
        }

    def to_dict(self) -> dict:
        m = self.metrics
        return {
            "symbol": self.symbol,
            "strategyType": self.strategy_type.value,
            "strategyName": self.strategy_name,
            "parameters": dict(self.parameters),
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "initialCapital": self.initial_capital,
            "finalCapital": m.final_capital,
            "totalReturn": m.total_return,
            "cagr": m.cagr,
            "maxDrawdown": m.max_drawdown,
            "sharpeRatio": m.sharpe_ratio,
            "sortinoRatio": m.sortino_ratio,
            "calmarRatio": m.calmar_ratio,
            "totalTrades": m.total_trades,
            "winningTrades": m.winning_trades,
            "losingTrades": m.losing_trades,
            "winRate": m.win_rate,
            "avgWin": m.avg_win,
            "avgLoss": m.avg_loss,
            "profitFactor": m.profit_factor,
            "maxWinStreak": m.max_win_streak,
            "maxLossStreak": m.max_loss_streak,
            "avgHoldingDays": m.avg_holding_days,
            "totalProfit": m.total_profit,
            "trades": [_trade_dict(t) for t in self.trades],
            "equityLabels": [p.date.isoformat() for p in self.equity_curve],
            "equityCurve": [p.equity_value for p in self.equity_curve],
            "benchmarkCurve": [p.benchmark_value for p in self.equity_curve],
            "drawdownCurve": [p.drawdown for p in self.equity_curve],
            "monthlyPerformance": [
                {"month": mp.month, "returnPct": mp.return_pct, "trades": mp.trades, "profit": mp.profit}
                for mp in self.monthly_performance
            ],
            "executionTimeMs": self.execution_time_ms,
        }


def _trade_dict(trade: Trade) -> dict:
    return {
        "tradeNumber": trade.trade_number,
        "entryDate": trade.entry_date.isoformat(),
        "exitDate": trade.exit_date.isoformat(),
        "entryPrice": trade.entry_price,
        "exitPrice": trade.exit_price,
        "quantity": trade.quantity,
        "profit": trade.profit,
        "profitPercent": trade.profit_percent,
        "holdingDays": trade.holding_days,
        "barsHeld": trade.bars_held,
        "exitReason": trade.exit_reason.value,
        "forcedExit": trade.forced_exit,
    }
