from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any

from backtestlab.backtest.metrics import calculate_metrics, monthly_performance
from backtestlab.backtest.models import BacktestRequest, BacktestResult, parse_request
from backtestlab.backtest.simulator import TradeSimulator
from backtestlab.core.exceptions import DataIntegrityError
from backtestlab.core.types import PriceBar, StrategySpec
from backtestlab.data.provider import PriceSeriesProvider, validate_bars
from backtestlab.strategy.registry import StrategyRegistry, default_registry
from backtestlab.strategy.signals import generate_signals

logger = logging.getLogger(__name__)


class BacktestEngine:
    """Drives one backtest: load bars, generate signals, simulate, measure."""

    def __init__(
        self,
        provider: PriceSeriesProvider,
        registry: StrategyRegistry | None = None,
    ) -> None:
        self._provider = provider
        self._registry = registry or default_registry()

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    def load_bars(self, request: BacktestRequest) -> tuple[PriceBar, ...]:
        bars = tuple(self._provider.load_bars(request.symbol, request.start_date, request.end_date))
        validate_bars(bars, request.symbol)
        return bars

    def run(
        self,
        request: BacktestRequest | dict[str, Any],
        bars: Sequence[PriceBar] | None = None,
    ) -> BacktestResult:
        """Run ``request`` against ``bars`` (loaded from the provider when omitted).

        Raises:
            ValidationError: Malformed request.
            ConfigurationError: Unknown strategy or invalid strategy parameters.
            DataIntegrityError: Malformed price series or too few bars for the
                strategy's lookback.
        """
        started = time.perf_counter()
        request = parse_request(request)
        definition = self._registry.require(request.strategy.type)
        params = definition.resolve(request.strategy.parameters)

        if bars is None:
            bars = self.load_bars(request)
        else:
            validate_bars(bars, request.symbol)

        required = definition.warmup(params) + 1
        if len(bars) < required:
            raise DataIntegrityError(
                f"{definition.type.value} needs at least {required} bars, got {len(bars)}",
                symbol=request.symbol,
            )

        logger.info(
            "Backtest start: %s %s %s..%s (%d bars) params=%s",
            request.symbol,
            definition.type.value,
            request.start_date,
            request.end_date,
            len(bars),
            params,
        )

        spec = StrategySpec(type=definition.type, parameters=params)
        signals = generate_signals(bars, spec, self._registry)
        simulation = TradeSimulator(request.execution_settings()).run(bars, signals, request.symbol)
        metrics = calculate_metrics(
            simulation.trades,
            simulation.equity_curve,
            request.initial_capital,
            request.period_days,
        )
        monthly = monthly_performance(simulation.trades, simulation.equity_curve, request.initial_capital)
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        logger.info(
            "Backtest done: %s %s trades=%d return=%.2f%% mdd=%.2f%% in %dms",
            request.symbol,
            definition.type.value,
            metrics.total_trades,
            metrics.total_return,
            metrics.max_drawdown,
            elapsed_ms,
        )
        return BacktestResult(
            symbol=request.symbol,
            strategy_type=definition.type,
            parameters=params,
            start_date=request.start_date,
            end_date=request.end_date,
            initial_capital=request.initial_capital,
            metrics=metrics,
            trades=simulation.trades,
            equity_curve=simulation.equity_curve,
            monthly_performance=tuple(monthly),
            execution_time_ms=elapsed_ms,
        )
