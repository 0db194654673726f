"""Strategy backtesting and parameter optimization engine."""

__version__ = "1.0.0"
