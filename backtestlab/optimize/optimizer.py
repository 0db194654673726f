"""Grid-search optimizer.

Every combination is an independent backtest over the same immutable price
series, run on a bounded thread pool. Workers return values only; ranking
happens once in the calling thread after the pool drains.
"""
from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from backtestlab.backtest.engine import BacktestEngine
from backtestlab.backtest.metrics import PerformanceMetrics
from backtestlab.backtest.models import (
    BacktestRequest,
    BacktestResult,
    ExecutionRequest,
    parse_model,
)
from backtestlab.core.config import OptimizerConfig
from backtestlab.core.exceptions import (
    ConfigurationError,
    DataIntegrityError,
    OptimizationError,
    ValidationError,
)
from backtestlab.core.types import ParamValue, PriceBar, StrategySpec, StrategyType
from backtestlab.optimize.grid import ParameterRange, count_combinations, expand_grid
from backtestlab.strategy.base import ParameterSpec

logger = logging.getLogger(__name__)


class OptimizationTarget(str, Enum):
    TOTAL_RETURN = "TOTAL_RETURN"
    SHARPE_RATIO = "SHARPE_RATIO"
    SORTINO_RATIO = "SORTINO_RATIO"
    PROFIT_FACTOR = "PROFIT_FACTOR"
    WIN_RATE = "WIN_RATE"
    CALMAR_RATIO = "CALMAR_RATIO"
    MIN_DRAWDOWN = "MIN_DRAWDOWN"

    def value_of(self, metrics: PerformanceMetrics) -> float | None:
        """Metric to maximize; drawdown is negated so smaller is better."""
        if self is OptimizationTarget.MIN_DRAWDOWN:
            return -metrics.max_drawdown
        return getattr(metrics, _TARGET_FIELDS[self])


_TARGET_FIELDS = {
    OptimizationTarget.TOTAL_RETURN: "total_return",
    OptimizationTarget.SHARPE_RATIO: "sharpe_ratio",
    OptimizationTarget.SORTINO_RATIO: "sortino_ratio",
    OptimizationTarget.PROFIT_FACTOR: "profit_factor",
    OptimizationTarget.WIN_RATE: "win_rate",
    OptimizationTarget.CALMAR_RATIO: "calmar_ratio",
}


class OptimizationRequest(ExecutionRequest):
    strategy_type: StrategyType
    strategy_params: dict[str, ParamValue] = Field(default_factory=dict)
    parameter_ranges: dict[str, ParameterRange]
    target: OptimizationTarget = OptimizationTarget.TOTAL_RETURN

    @model_validator(mode="before")
    @classmethod
    def accept_nested_strategy(cls, data: Any) -> Any:
        """Accept ``strategy: {type, parameters}`` in place of the flat fields."""
        if not isinstance(data, dict) or not isinstance(data.get("strategy"), dict):
            return data
        data = dict(data)
        strategy = data.pop("strategy")
        data.setdefault("strategyType", strategy.get("type"))
        data.setdefault("strategyParams", strategy.get("parameters") or {})
        return data

    def base_request(self) -> BacktestRequest:
        return BacktestRequest(
            symbol=self.symbol,
            strategy=StrategySpec(type=self.strategy_type, parameters=self.strategy_params),
            start_date=self.start_date,
            end_date=self.end_date,
            initial_capital=self.initial_capital,
            position_size_percent=self.position_size_percent,
            commission_rate=self.commission_rate,
            slippage=self.slippage,
            stop_loss_percent=self.stop_loss_percent,
            take_profit_percent=self.take_profit_percent,
        )


class CancellationToken:
    """Cooperative cancellation, checked before each combination starts."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True, slots=True)
class FailedCombination:
    index: int
    parameters: dict[str, ParamValue]
    error: str
    error_type: str

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "parameters": dict(self.parameters),
            "error": self.error,
            "errorType": self.error_type,
        }


@dataclass(frozen=True)
class OptimizationResult:
    """Ranked grid-search outcome.

    ``skipped_combinations`` counts failed combinations plus those never run
    because the token was cancelled or the deadline passed.
    """

    target: OptimizationTarget
    best_parameters: dict[str, ParamValue] | None
    best_result: BacktestResult | None
    all_results: list[dict] = field(default_factory=list)
    failed_results: list[FailedCombination] = field(default_factory=list)
    total_combinations: int = 0
    completed_combinations: int = 0
    skipped_combinations: int = 0
    cancelled: bool = False
    execution_time_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "target": self.target.value,
            "bestParameters": self.best_parameters,
            "bestResult": self.best_result.to_dict() if self.best_result else None,
            "allResults": self.all_results,
            "failedResults": [f.to_dict() for f in self.failed_results],
            "totalCombinations": self.total_combinations,
            "completedCombinations": self.completed_combinations,
            "skippedCombinations": self.skipped_combinations,
            "cancelled": self.cancelled,
            "executionTimeMs": self.execution_time_ms,
        }


@dataclass(frozen=True, slots=True)
class _Outcome:
    index: int
    parameters: dict[str, ParamValue]
    result: BacktestResult | None = None
    failure: FailedCombination | None = None
    skipped: bool = False


def _rank_key(target_value: float | None, index: int) -> tuple:
    # Highest value first, missing values last, generation order breaks ties
    if target_value is None:
        return (1, 0.0, index)
    return (0, -target_value, index)


class Optimizer:
    def __init__(self, engine: BacktestEngine, config: OptimizerConfig | None = None) -> None:
        self._engine = engine
        self._config = config or OptimizerConfig()

    def optimize(
        self,
        request: OptimizationRequest | Mapping[str, Any],
        token: CancellationToken | None = None,
    ) -> OptimizationResult:
        """Run every grid combination and rank them by ``request.target``.

        Raises:
            ValidationError: Malformed request or grid (bad ranges, unknown or
                non-numeric parameter names, too many combinations).
            ConfigurationError: Unknown strategy type or invalid fixed parameters.
            DataIntegrityError: The shared price series is malformed.
            OptimizationError: No combination completed successfully.
        """
        started = time.perf_counter()
        req = parse_model(OptimizationRequest, request)
        token = token or CancellationToken()

        definition = self._engine.registry.require(req.strategy_type)
        self._check_parameters(req, definition.parameters)

        total = count_combinations(req.parameter_ranges)
        if total > self._config.max_combinations:
            raise ValidationError(
                f"{total} combinations exceed the limit of {self._config.max_combinations}"
            )
        if total > self._config.warn_combinations:
            logger.warning("Large optimization grid: %d combinations", total)

        base = req.base_request()
        bars = self._engine.load_bars(base)
        combinations = [
            {**req.strategy_params, **combo} for combo in expand_grid(req.parameter_ranges)
        ]
        deadline = (
            started + self._config.timeout_seconds if self._config.timeout_seconds is not None else None
        )
        workers = self._config.max_workers or os.cpu_count() or 1

        logger.info(
            "Optimization start: %s %s, %d combinations, target=%s, workers=%d",
            req.symbol,
            req.strategy_type.value,
            total,
            req.target.value,
            workers,
        )

        outcomes: list[_Outcome] = []
        progress_step = max(1, total // 10)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="optimizer") as pool:
            futures = [
                pool.submit(self._run_one, base, bars, index, params, token, deadline)
                for index, params in enumerate(combinations)
            ]
            for done, future in enumerate(as_completed(futures), start=1):
                outcomes.append(future.result())
                if done % progress_step == 0 or done == total:
                    logger.info("Optimization progress: %d/%d (%d%%)", done, total, done * 100 // total)

        return self._collect(req, outcomes, total, started, token)

    def _run_one(
        self,
        base: BacktestRequest,
        bars: tuple[PriceBar, ...],
        index: int,
        params: dict[str, ParamValue],
        token: CancellationToken,
        deadline: float | None,
    ) -> _Outcome:
        if token.cancelled or (deadline is not None and time.perf_counter() >= deadline):
            return _Outcome(index=index, parameters=params, skipped=True)
        try:
            result = self._engine.run(base.with_parameters(params), bars)
        except (ValidationError, DataIntegrityError) as exc:
            logger.warning("Combination %d %s failed: %s", index, params, exc)
            return self._failed(index, params, exc)
        except Exception as exc:
            # Custom generators can raise anything
            logger.exception("Combination %d %s raised unexpectedly", index, params)
            return self._failed(index, params, exc)
        return _Outcome(index=index, parameters=params, result=result)

    @staticmethod
    def _failed(index: int, params: dict[str, ParamValue], exc: Exception) -> _Outcome:
        failure = FailedCombination(
            index=index, parameters=params, error=str(exc), error_type=type(exc).__name__
        )
        return _Outcome(index=index, parameters=params, failure=failure)

    def _collect(
        self,
        req: OptimizationRequest,
        outcomes: list[_Outcome],
        total: int,
        started: float,
        token: CancellationToken,
    ) -> OptimizationResult:
        succeeded = [o for o in outcomes if o.result is not None]
        failed = sorted((o.failure for o in outcomes if o.failure is not None), key=lambda f: f.index)
        unrun = sum(1 for o in outcomes if o.skipped)
        skipped = unrun + len(failed)
        cancelled = unrun > 0 or token.cancelled

        if not succeeded and not cancelled:
            raise OptimizationError(f"all {total} combinations failed")

        scored = [(req.target.value_of(o.result.metrics), o) for o in succeeded]
        scored.sort(key=lambda item: _rank_key(item[0], item[1].index))

        all_results = [
            {**o.result.summary(), "parameters": dict(o.parameters), "targetValue": value}
            for value, o in scored
        ]
        best = scored[0][1] if scored else None
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        if cancelled:
            logger.warning("Optimization cancelled: %d of %d combinations not run", unrun, total)
        logger.info(
            "Optimization done: %d ok, %d failed, %d not run in %dms; best=%s",
            len(succeeded),
            len(failed),
            unrun,
            elapsed_ms,
            best.parameters if best else None,
        )
        return OptimizationResult(
            target=req.target,
            best_parameters=dict(best.parameters) if best else None,
            best_result=best.result if best else None,
            all_results=all_results,
            failed_results=failed,
            total_combinations=total,
            completed_combinations=len(succeeded),
            skipped_combinations=skipped,
            cancelled=cancelled,
            execution_time_ms=elapsed_ms,
        )

    @staticmethod
    def _check_parameters(req: OptimizationRequest, parameters: Sequence[ParameterSpec]) -> None:
        """Check fixed values one by one; cross-parameter rules apply per combination."""
        strategy = req.strategy_type.value
        known = {p.name: p for p in parameters}
        for name, value in req.strategy_params.items():
            if name not in known:
                raise ConfigurationError(f"unknown parameter: {name}", strategy=strategy)
            known[name].coerce(value, strategy)

        numeric = {p.name for p in parameters if not p.choices}
        declared = {p.name for p in parameters}
        for name in req.parameter_ranges:
            if name not in declared:
                raise ValidationError(
                    f"unknown parameter '{name}' for {req.strategy_type.value}"
                )
            if name not in numeric:
                raise ValidationError(f"parameter '{name}' is not numeric and cannot be ranged")
