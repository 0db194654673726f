"""End-to-end backtest integration test.

Verifies that the modules work together: a provider loads bars, a strategy
generates signals, the simulator executes them and the engine measures the
result. Runs against synthetic and CSV-backed data.
"""
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from backtestlab.backtest.comparison import compare_results
from backtestlab.backtest.engine import BacktestEngine
from backtestlab.core.config import DataConfig, load_settings
from backtestlab.data.provider import CsvPriceProvider, SyntheticPriceProvider, build_provider
from backtestlab.optimize.optimizer import Optimizer

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "default.yaml"

STRATEGIES = ["MOVING_AVERAGE", "RSI", "BOLLINGER_BAND", "MOMENTUM", "MACD"]


def _request(strategy_type, parameters=None, **overrides):
    request = {
        "symbol": "SPY",
        "strategy": {"type": strategy_type, "parameters": parameters or {}},
        "startDate": "2022-01-01",
        "endDate": "2023-12-31",
        "initialCapital": 100_000,
        "commissionRate": 0.0005,
        "slippage": 0.0005,
    }
    request.update(overrides)
    return request


@pytest.fixture(scope="module")
def engine():
    return BacktestEngine(SyntheticPriceProvider(seed=11))


class TestSyntheticBacktests:
    @pytest.mark.parametrize("strategy_type", STRATEGIES)
    def test_every_builtin_strategy(self, engine, strategy_type):
        result = engine.run(_request(strategy_type))
        m = result.metrics

        assert result.strategy_type.value == strategy_type
        assert len(result.equity_curve) > 500
        assert m.final_capital == pytest.approx(100_000 + sum(t.profit for t in result.trades))
        assert m.total_trades == m.winning_trades + m.losing_trades
        assert 0.0 <= m.win_rate <= 100.0
        assert m.max_drawdown >= 0.0
        assert all(p.drawdown <= 0.0 for p in result.equity_curve)
        assert sum(mp.trades for mp in result.monthly_performance) == m.total_trades
        for earlier, later in zip(result.trades, result.trades[1:]):
            assert earlier.exit_date <= later.entry_date

    def test_risk_exits(self, engine):
        result = engine.run(_request("MOMENTUM", stopLossPercent=2, takeProfitPercent=4))
        reasons = {t.exit_reason.value for t in result.trades}
        assert reasons & {"STOP_LOSS", "TAKE_PROFIT"}
        for trade in result.trades:
            if trade.exit_reason.value == "STOP_LOSS":
                assert trade.exit_price == pytest.approx(trade.entry_price * 0.98)
            if trade.exit_reason.value == "TAKE_PROFIT":
                assert trade.exit_price == pytest.approx(trade.entry_price * 1.04)

    def test_same_seed_same_result(self):
        first = BacktestEngine(SyntheticPriceProvider(seed=3)).run(_request("RSI")).to_dict()
        second = BacktestEngine(SyntheticPriceProvider(seed=3)).run(_request("RSI")).to_dict()
        first.pop("executionTimeMs")
        second.pop("executionTimeMs")
        assert first == second

    def test_compare_strategies(self, engine):
        results = {i: engine.run(_request(t)) for i, t in enumerate(STRATEGIES, start=1)}
        comparison = compare_results(results)
        assert comparison["summary"]["count"] == 5
        assert len(comparison["rankings"]["totalReturn"]) == 5


class TestOptimizationFlow:
    def test_optimize_then_rerun_best(self, engine):
        optimizer = Optimizer(engine)
        result = optimizer.optimize({
            **_request("RSI"),
            "strategyType": "RSI",
            "parameterRanges": {
                "period": {"min": 10, "max": 20, "step": 5},
                "oversoldLevel": {"min": 20, "max": 30, "step": 5},
            },
            "target": "CALMAR_RATIO",
        })

        assert result.total_combinations == 9
        assert result.completed_combinations + len(result.failed_results) == 9

        rerun = engine.run(_request("RSI", result.best_parameters))
        assert rerun.metrics == result.best_result.metrics


class TestConfiguredProviders:
    def test_default_config_builds_synthetic_provider(self):
        settings = load_settings(CONFIG_PATH)
        provider = build_provider(settings.data)
        assert isinstance(provider, SyntheticPriceProvider)
        bars = provider.load_bars("SPY", date(2024, 1, 1), date(2024, 1, 31))
        assert len(bars) == 23

    def test_csv_backtest(self, tmp_path):
        bars = SyntheticPriceProvider(seed=5).load_bars("QQQ", date(2023, 1, 1), date(2023, 12, 31))
        pd.DataFrame({
            "Date": [b.date.isoformat() for b in bars],
            "Open": [b.open for b in bars],
            "High": [b.high for b in bars],
            "Low": [b.low for b in bars],
            "Close": [b.close for b in bars],
            "Volume": [b.volume for b in bars],
        }).to_csv(tmp_path / "QQQ.csv", index=False)

        provider = build_provider(DataConfig(provider="csv", csv_dir=str(tmp_path)))
        assert isinstance(provider, CsvPriceProvider)

        request = _request("MACD", symbol="qqq", startDate="2023-01-01", endDate="2023-12-31")
        from_csv = BacktestEngine(provider).run(request)
        direct = BacktestEngine(provider).run(request, bars=bars)

        assert len(from_csv.equity_curve) == len(bars)
        assert from_csv.metrics.total_trades == direct.metrics.total_trades
        assert from_csv.final_capital == pytest.approx(direct.final_capital)
