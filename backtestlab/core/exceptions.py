"""Core exception hierarchy for backtestlab.

This module defines the exceptions raised by the backtest engine, the
optimizer and the request boundary. Numerical edge cases (no trades, zero
volatility, no losing trades) are never errors and resolve to sentinel values
in the metrics instead.
"""


class BacktestLabError(Exception):
    """Base exception class for all backtestlab errors.

    All backtestlab-specific exceptions inherit from this class,
    allowing callers to catch all engine errors with a single except clause.
    """


class ValidationError(BacktestLabError):
    """Malformed request.

    Raised before any simulation starts when a request has the wrong shape:
    date ordering, non-positive capital, out-of-range percentages or invalid
    optimization ranges. Never retried automatically.
    """


class ConfigurationError(ValidationError):
    """Strategy configuration errors.

    Raised for an unknown or unregistered strategy type and for strategy
    parameters that are unknown, non-numeric, out of range or inconsistent
    with each other (e.g. ``shortPeriod >= longPeriod``).

    Attributes:
        strategy: Strategy type the error refers to, if known.
    """

    def __init__(self, message: str, strategy: str | None = None):
        """Initialize ConfigurationError.

        Args:
            message: Description of the configuration problem.
            strategy: Strategy type name (e.g. "MOVING_AVERAGE").
        """
        super().__init__(f"[{strategy}] {message}" if strategy else message)
        self.strategy = strategy


class DataIntegrityError(BacktestLabError):
    """Malformed or insufficient price history.

    Aborts the affected backtest run. Inside an optimization it aborts only the
    combination that hit it.

    Attributes:
        symbol: Symbol of the offending price series, if known.
        index: Bar index where the problem was detected, if applicable.
    """

    def __init__(self, message: str, symbol: str | None = None, index: int | None = None):
        """Initialize DataIntegrityError.

        Args:
            message: Description of the data problem.
            symbol: Ticker symbol of the series.
            index: Position of the offending bar in the series.
        """
        prefix = f"[{symbol}] " if symbol else ""
        suffix = f" (bar {index})" if index is not None else ""
        super().__init__(f"{prefix}{message}{suffix}")
        self.symbol = symbol
        self.index = index


class OptimizationError(BacktestLabError):
    """Optimization produced no usable result.

    Raised only when every combination of a grid search failed; partial
    failures are reported alongside the successful results instead.
    """
