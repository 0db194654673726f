from dataclasses import FrozenInstanceError
from datetime import date

import pytest

from backtestlab.core.types import (
    ExitReason,
    PriceBar,
    Signal,
    StrategySpec,
    StrategyType,
    Trade,
)


class TestStrategyType:
    def test_every_type_has_label_and_description(self):
        for strategy_type in StrategyType:
            assert strategy_type.label
            assert strategy_type.description

    def test_lookup_by_value(self):
        assert StrategyType("BOLLINGER_BAND") is StrategyType.BOLLINGER_BAND


class TestStrategySpec:
    def test_parameters_default_to_empty(self):
        spec = StrategySpec(type=StrategyType.RSI)
        assert spec.parameters == {}

    def test_parses_type_from_string(self):
        spec = StrategySpec.model_validate({"type": "MACD", "parameters": {"fastPeriod": 8}})
        assert spec.type is StrategyType.MACD
        assert spec.parameters["fastPeriod"] == 8


class TestPriceBar:
    def test_is_immutable(self):
        bar = PriceBar(date(2024, 1, 2), 10.0, 11.0, 9.0, 10.5, 100.0)
        with pytest.raises(FrozenInstanceError):
            bar.close = 12.0


class TestTrade:
    def _trade(self, profit: float) -> Trade:
        return Trade(
            trade_number=1,
            entry_date=date(2024, 1, 2),
            exit_date=date(2024, 1, 9),
            entry_price=100.0,
            exit_price=100.0 + profit / 10,
            quantity=10,
            profit=profit,
            profit_percent=profit / 1000 * 100,
            holding_days=7,
            bars_held=5,
            exit_reason=ExitReason.SIGNAL,
        )

    def test_positive_profit_is_win(self):
        assert self._trade(50.0).is_win

    def test_zero_profit_is_not_win(self):
        assert not self._trade(0.0).is_win

    def test_not_forced_by_default(self):
        assert self._trade(1.0).forced_exit is False


def test_signal_values():
    assert {s.value for s in Signal} == {"ENTER_LONG", "EXIT", "HOLD"}
