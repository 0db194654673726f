"""Unit tests for the backtest engine."""
from datetime import date

import pytest

from backtestlab.backtest.engine import BacktestEngine
from backtestlab.core.exceptions import ConfigurationError, DataIntegrityError, ValidationError
from backtestlab.core.types import PriceBar, Signal, StrategyType
from backtestlab.data.provider import InMemoryPriceProvider, SyntheticPriceProvider
from backtestlab.strategy.registry import StrategyRegistry, default_registry


def _request(bars, symbol="TEST", strategy_type="MOVING_AVERAGE", parameters=None, **overrides):
    request = {
        "symbol": symbol,
        "strategy": {"type": strategy_type, "parameters": parameters or {}},
        "startDate": bars[0].date.isoformat(),
        "endDate": bars[-1].date.isoformat(),
        "initialCapital": 10_000,
    }
    request.update(overrides)
    return request


class TestFlatMarket:
    def test_no_crossings_no_trades(self, flat_bars):
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": flat_bars}))
        result = engine.run(_request(flat_bars, parameters={"shortPeriod": 5, "longPeriod": 20}))

        assert result.trades == ()
        assert result.metrics.total_return == 0.0
        assert result.metrics.max_drawdown == 0.0
        assert result.metrics.sharpe_ratio == 0.0
        assert result.final_capital == 10_000.0
        assert len(result.equity_curve) == len(flat_bars)

    @pytest.mark.parametrize("strategy_type", ["RSI", "BOLLINGER_BAND", "MOMENTUM", "MACD"])
    def test_flat_series_never_trades(self, strategy_type, flat_bars):
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": flat_bars}))
        parameters = {"slowPeriod": 20, "signalPeriod": 5} if strategy_type == "MACD" else {}
        result = engine.run(_request(flat_bars, strategy_type=strategy_type, parameters=parameters))
        assert result.metrics.total_trades == 0


class TestRun:
    @pytest.fixture
    def engine(self, wave_bars):
        return BacktestEngine(InMemoryPriceProvider({"WAVE": wave_bars}))

    def test_wave_produces_trades(self, engine, wave_bars):
        result = engine.run(_request(wave_bars, symbol="wave", parameters={"shortPeriod": 3, "longPeriod": 8}))
        assert result.symbol == "WAVE"
        assert result.metrics.total_trades > 0
        assert result.parameters == {"shortPeriod": 3, "longPeriod": 8, "maType": "SMA"}
        total = sum(t.profit for t in result.trades)
        assert result.final_capital == pytest.approx(10_000 + total)

    def test_idempotent(self, engine, wave_bars):
        request = _request(wave_bars, symbol="WAVE", strategy_type="RSI", parameters={"period": 5})
        first = engine.run(request).to_dict()
        second = engine.run(request).to_dict()
        first.pop("executionTimeMs")
        second.pop("executionTimeMs")
        assert first == second

    def test_explicit_bars_bypass_provider(self, wave_bars):
        engine = BacktestEngine(InMemoryPriceProvider())
        result = engine.run(_request(wave_bars, parameters={"shortPeriod": 3, "longPeriod": 8}), bars=wave_bars)
        assert len(result.equity_curve) == len(wave_bars)

    def test_costs_reduce_return(self, engine, wave_bars):
        base = _request(wave_bars, symbol="WAVE", parameters={"shortPeriod": 3, "longPeriod": 8})
        free = engine.run(base)
        costly = engine.run({**base, "commissionRate": 0.01, "slippage": 0.005})
        assert costly.metrics.total_return < free.metrics.total_return

    def test_date_window_filters_provider_bars(self, engine, wave_bars):
        request = _request(wave_bars[:100], symbol="WAVE", parameters={"shortPeriod": 3, "longPeriod": 8})
        result = engine.run(request)
        assert len(result.equity_curve) == 100


class TestRunErrors:
    def test_insufficient_bars_for_lookback(self, flat_bars):
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": flat_bars}))
        # default longPeriod of 60 needs 61 bars
        with pytest.raises(DataIntegrityError, match="needs at least 61 bars, got 60"):
            engine.run(_request(flat_bars))

    def test_unknown_symbol(self, flat_bars):
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": flat_bars}))
        with pytest.raises(DataIntegrityError):
            engine.run(_request(flat_bars, symbol="NOPE"))

    def test_invalid_parameters(self, wave_bars):
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": wave_bars}))
        with pytest.raises(ConfigurationError):
            engine.run(_request(wave_bars, parameters={"shortPeriod": 30, "longPeriod": 10}))

    def test_custom_without_registration(self, wave_bars):
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": wave_bars}))
        with pytest.raises(ConfigurationError, match="CUSTOM"):
            engine.run(_request(wave_bars, strategy_type="CUSTOM"))

    def test_malformed_request(self, wave_bars):
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": wave_bars}))
        with pytest.raises(ValidationError):
            engine.run(_request(wave_bars, initialCapital=-5))

    def test_malformed_explicit_bars(self, wave_bars):
        engine = BacktestEngine(InMemoryPriceProvider())
        bars = list(wave_bars)
        bars[10] = PriceBar(bars[10].date, 1.0, 1.0, 2.0, 1.0)
        with pytest.raises(DataIntegrityError, match="low is above high"):
            engine.run(_request(bars, parameters={"shortPeriod": 3, "longPeriod": 8}), bars=bars)


class TestCustomStrategy:
    def test_registered_generator_runs(self, wave_bars):
        registry = StrategyRegistry(default_registry().all())

        def every_tenth(bars, params):
            return [Signal.ENTER_LONG if i % 10 == 0 else Signal.EXIT if i % 10 == 5 else Signal.HOLD
                    for i in range(len(bars))]

        registry.register_custom(every_tenth)
        engine = BacktestEngine(InMemoryPriceProvider({"TEST": wave_bars}), registry)
        result = engine.run(_request(wave_bars, strategy_type="CUSTOM"))

        assert result.strategy_type == StrategyType.CUSTOM
        assert result.metrics.total_trades == 20


class TestSyntheticData:
    def test_full_year(self):
        engine = BacktestEngine(SyntheticPriceProvider(seed=7))
        result = engine.run({
            "symbol": "AAPL",
            "strategy": {"type": "MACD"},
            "startDate": "2023-01-01",
            "endDate": "2023-12-31",
            "initialCapital": 100_000,
            "commissionRate": 0.001,
        })
        assert len(result.equity_curve) == 260
        assert result.equity_curve[0].date >= date(2023, 1, 2)
        assert result.metrics.final_capital > 0
