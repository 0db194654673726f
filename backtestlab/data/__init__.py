from backtestlab.data.provider import (
    CsvPriceProvider,
    InMemoryPriceProvider,
    PriceSeriesProvider,
    SyntheticPriceProvider,
    build_provider,
    validate_bars,
)

__all__ = [
    "CsvPriceProvider",
    "InMemoryPriceProvider",
    "PriceSeriesProvider",
    "SyntheticPriceProvider",
    "build_provider",
    "validate_bars",
]
