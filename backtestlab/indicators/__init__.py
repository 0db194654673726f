from backtestlab.indicators.momentum import momentum_series, rsi_series
from backtestlab.indicators.moving_average import ema_series, sma_series
from backtestlab.indicators.trend import macd_series
from backtestlab.indicators.volatility import Band, bollinger_series

__all__ = [
    "Band",
    "bollinger_series",
    "ema_series",
    "macd_series",
    "momentum_series",
    "rsi_series",
    "sma_series",
]
