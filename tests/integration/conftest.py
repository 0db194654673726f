"""Shared fixtures for integration tests: an API client over in-memory series."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from backtestlab.api.app import create_app
from backtestlab.backtest.engine import BacktestEngine
from backtestlab.core.config import ApiConfig, OptimizerConfig, Settings
from backtestlab.data.provider import InMemoryPriceProvider


@pytest.fixture
def settings():
    return Settings(
        optimizer=OptimizerConfig(max_combinations=50, warn_combinations=20, max_workers=2),
        api=ApiConfig(history_size=3),
    )


@pytest.fixture
def client(settings, wave_bars):
    engine = BacktestEngine(InMemoryPriceProvider({"WAVE": wave_bars}))
    with TestClient(create_app(settings, engine=engine)) as test_client:
        yield test_client


@pytest.fixture
def run_payload(wave_bars):
    def _build(**overrides):
        payload = {
            "symbol": "WAVE",
            "strategy": {"type": "MOVING_AVERAGE", "parameters": {"shortPeriod": 3, "longPeriod": 8}},
            "startDate": wave_bars[0].date.isoformat(),
            "endDate": wave_bars[-1].date.isoformat(),
            "initialCapital": 10000,
        }
        payload.update(overrides)
        return payload

    return _build
