"""Unit tests for request parsing and result rendering."""
from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from backtestlab.backtest.engine import BacktestEngine
from backtestlab.backtest.models import BacktestRequest, ExecutionRequest, parse_request
from backtestlab.core.exceptions import ConfigurationError, ValidationError
from backtestlab.core.types import StrategyType
from backtestlab.data.provider import InMemoryPriceProvider


def _payload(**overrides):
    payload = {
        "symbol": "aapl",
        "strategy": {"type": "MOVING_AVERAGE", "parameters": {"shortPeriod": 5, "longPeriod": 20}},
        "startDate": "2024-01-01",
        "endDate": "2024-12-31",
        "initialCapital": 10000,
    }
    payload.update(overrides)
    return payload


class TestBacktestRequest:
    def test_camel_case_payload(self):
        req = parse_request(_payload(commissionRate=0.001, stopLossPercent=5))
        assert req.symbol == "AAPL"
        assert req.start_date == date(2024, 1, 1)
        assert req.strategy.type == StrategyType.MOVING_AVERAGE
        assert req.strategy.parameters == {"shortPeriod": 5, "longPeriod": 20}
        assert req.commission_rate == 0.001
        assert req.stop_loss_percent == 5
        assert req.position_size_percent == 100.0
        assert req.take_profit_percent is None

    def test_stop_loss_may_cover_the_whole_position(self):
        assert parse_request(_payload(stopLossPercent=100)).stop_loss_percent == 100

    def test_snake_case_payload(self):
        req = parse_request({
            "symbol": "msft",
            "strategy": {"type": "RSI"},
            "start_date": "2024-01-01",
            "end_date": "2024-02-01",
            "initial_capital": 5000,
            "position_size_percent": 50,
        })
        assert req.symbol == "MSFT"
        assert req.position_size_percent == 50
        assert req.strategy.parameters == {}

    def test_flat_strategy_fields(self):
        payload = _payload()
        del payload["strategy"]
        payload.update(strategyType="BOLLINGER_BAND", strategyParams={"period": 10})
        req = parse_request(payload)
        assert req.strategy.type == StrategyType.BOLLINGER_BAND
        assert req.strategy.parameters == {"period": 10}

    def test_instance_passes_through(self):
        req = parse_request(_payload())
        assert parse_request(req) is req

    def test_period_days(self):
        req = parse_request(_payload(startDate="2024-01-01", endDate="2024-01-31"))
        assert req.period_days == 30

    def test_execution_settings(self):
        req = parse_request(_payload(slippage=0.002, takeProfitPercent=10))
        settings = req.execution_settings()
        assert settings.initial_capital == 10000
        assert settings.slippage == 0.002
        assert settings.take_profit_percent == 10

    def test_with_parameters_keeps_the_rest(self):
        req = parse_request(_payload())
        other = req.with_parameters({"shortPeriod": 3, "longPeriod": 9})
        assert other.strategy.parameters == {"shortPeriod": 3, "longPeriod": 9}
        assert other.symbol == req.symbol
        assert req.strategy.parameters == {"shortPeriod": 5, "longPeriod": 20}

    def test_request_is_frozen(self):
        req = parse_request(_payload())
        with pytest.raises(PydanticValidationError):
            req.symbol = "X"


class TestRequestErrors:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"initialCapital": 0},
            {"initialCapital": -1},
            {"positionSizePercent": 0},
            {"positionSizePercent": 150},
            {"commissionRate": -0.1},
            {"commissionRate": 1},
            {"slippage": 1.5},
            {"stopLossPercent": 101},
            {"stopLossPercent": -1},
            {"takeProfitPercent": -5},
            {"symbol": "   "},
            {"startDate": "not-a-date"},
        ],
    )
    def test_invalid_fields(self, overrides):
        with pytest.raises(ValidationError):
            parse_request(_payload(**overrides))

    def test_invalid_fields_are_not_configuration_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_request(_payload(initialCapital=0))
        assert not isinstance(exc_info.value, ConfigurationError)
        assert "initialCapital" in str(exc_info.value)

    @pytest.mark.parametrize("end", ["2024-01-01", "2023-12-31"])
    def test_start_must_precede_end(self, end):
        with pytest.raises(ValidationError, match="startDate must be before endDate"):
            parse_request(_payload(startDate="2024-01-01", endDate=end))

    def test_missing_field(self):
        payload = _payload()
        del payload["initialCapital"]
        with pytest.raises(ValidationError, match="initialCapital"):
            parse_request(payload)

    def test_unknown_strategy_type(self):
        with pytest.raises(ConfigurationError, match="unknown strategy type") as exc_info:
            parse_request(_payload(strategy={"type": "TURTLE"}))
        assert exc_info.value.strategy == "TURTLE"

    def test_unknown_flat_strategy_type(self):
        payload = _payload()
        del payload["strategy"]
        payload["strategyType"] = "TURTLE"
        with pytest.raises(ConfigurationError):
            parse_request(payload)

    def test_execution_request_alone(self):
        req = ExecutionRequest(
            symbol="x", start_date=date(2024, 1, 1), end_date=date(2024, 2, 1), initial_capital=1.0
        )
        assert req.symbol == "X"


class TestBacktestResult:
    @pytest.fixture
    def result(self, make_bars, make_wave_closes):
        bars = make_bars(make_wave_closes(120))
        engine = BacktestEngine(InMemoryPriceProvider({"WAVE": bars}))
        return engine.run(BacktestRequest.model_validate(_payload(
            symbol="wave",
            startDate=bars[0].date.isoformat(),
            endDate=bars[-1].date.isoformat(),
            strategy={"type": "MOVING_AVERAGE", "parameters": {"shortPeriod": 3, "longPeriod": 8}},
        )))

    def test_to_dict_shape(self, result):
        data = result.to_dict()
        assert data["symbol"] == "WAVE"
        assert data["strategyType"] == "MOVING_AVERAGE"
        assert data["strategyName"] == "Moving Average"
        assert data["parameters"] == {"shortPeriod": 3, "longPeriod": 8, "maType": "SMA"}
        assert data["totalTrades"] == len(data["trades"]) > 0
        n = len(data["equityLabels"])
        assert n == 120
        assert len(data["equityCurve"]) == len(data["benchmarkCurve"]) == len(data["drawdownCurve"]) == n
        assert data["finalCapital"] == data["equityCurve"][-1]

    def test_trade_dict(self, result):
        trade = result.to_dict()["trades"][0]
        assert set(trade) == {
            "tradeNumber", "entryDate", "exitDate", "entryPrice", "exitPrice", "quantity",
            "profit", "profitPercent", "holdingDays", "barsHeld", "exitReason", "forcedExit",
        }
        assert trade["tradeNumber"] == 1
        assert trade["exitReason"] in {"SIGNAL", "STOP_LOSS", "TAKE_PROFIT", "END_OF_DATA"}

    def test_monthly_rows(self, result):
        months = result.to_dict()["monthlyPerformance"]
        assert [m["month"] for m in months] == ["2024-01", "2024-02", "2024-03", "2024-04"]
        assert sum(m["trades"] for m in months) == result.metrics.total_trades

    def test_summary(self, result):
        summary = result.summary()
        assert summary["strategyType"] == "MOVING_AVERAGE"
        assert summary["totalReturn"] == result.metrics.total_return
        assert "trades" not in summary
