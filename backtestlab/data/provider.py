"""Price series providers.

The engine only depends on :class:`PriceSeriesProvider`; everything else in
this module is a shipped implementation of that contract.
"""
from __future__ import annotations

import logging
import math
import random
import zlib
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, timedelta
from pathlib import Path

import pandas as pd

from backtestlab.core.config import DataConfig
from backtestlab.core.exceptions import DataIntegrityError
from backtestlab.core.types import PriceBar

logger = logging.getLogger(__name__)

_CSV_COLUMNS = ("date", "open", "high", "low", "close", "volume")
SYNTHETIC_EPOCH = date(2000, 1, 3)


class PriceSeriesProvider(ABC):
    @abstractmethod
    def load_bars(self, symbol: str, start: date, end: date) -> tuple[PriceBar, ...]:
        """Return daily bars for ``symbol`` within ``[start, end]``, oldest first."""


def validate_bars(bars: Sequence[PriceBar], symbol: str | None = None) -> None:
    """Reject series the simulator cannot replay.

    Raises:
        DataIntegrityError: Empty series, non-increasing dates, non-positive
            or non-finite prices, low above high, or negative volume.
    """
    if not bars:
        raise DataIntegrityError("price series is empty", symbol=symbol)

    prev_date: date | None = None
    for i, bar in enumerate(bars):
        if prev_date is not None and bar.date <= prev_date:
            raise DataIntegrityError(
                f"dates must be strictly increasing ({bar.date} after {prev_date})",
                symbol=symbol,
                index=i,
            )
        prices = (bar.open, bar.high, bar.low, bar.close)
        if not all(math.isfinite(p) for p in prices) or min(prices) <= 0:
            raise DataIntegrityError("prices must be positive", symbol=symbol, index=i)
        if bar.low > bar.high:
            raise DataIntegrityError("low is above high", symbol=symbol, index=i)
        if not math.isfinite(bar.volume) or bar.volume < 0:
            raise DataIntegrityError("volume must be non-negative", symbol=symbol, index=i)
        prev_date = bar.date


class InMemoryPriceProvider(PriceSeriesProvider):
    """Serves pre-loaded series; used by tests and embedding callers."""

    def __init__(self, series: Mapping[str, Iterable[PriceBar]] | None = None) -> None:
        self._series: dict[str, tuple[PriceBar, ...]] = {}
        for symbol, bars in (series or {}).items():
            self.add(symbol, bars)

    def add(self, symbol: str, bars: Iterable[PriceBar]) -> None:
        self._series[symbol.upper()] = tuple(sorted(bars, key=lambda b: b.date))

    def load_bars(self, symbol: str, start: date, end: date) -> tuple[PriceBar, ...]:
        bars = self._series.get(symbol.upper(), ())
        return tuple(b for b in bars if start <= b.date <= end)


class CsvPriceProvider(PriceSeriesProvider):
    """Reads ``<csv_dir>/<SYMBOL>.csv`` with date/open/high/low/close/volume columns."""

    def __init__(self, csv_dir: Path | str) -> None:
        self._csv_dir = Path(csv_dir)

    def load_bars(self, symbol: str, start: date, end: date) -> tuple[PriceBar, ...]:
        path = self._csv_dir / f"{symbol.upper()}.csv"
        if not path.exists():
            raise DataIntegrityError(f"no price file at {path}", symbol=symbol)

        df = pd.read_csv(path)
        df.columns = [str(c).strip().lower() for c in df.columns]
        missing = [c for c in _CSV_COLUMNS if c not in df.columns]
        if missing:
            raise DataIntegrityError(f"missing column(s): {', '.join(missing)}", symbol=symbol)

        df["date"] = pd.to_datetime(df["date"]).dt.date
        df = df[(df["date"] >= start) & (df["date"] <= end)].sort_values("date")
        if df[list(_CSV_COLUMNS[1:])].isna().any().any():
            raise DataIntegrityError("price file contains empty values", symbol=symbol)

        logger.debug("Loaded %d bars for %s from %s", len(df), symbol, path)
        return tuple(
            PriceBar(
                date=row.date,
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=float(row.volume),
            )
            for row in df.itertuples(index=False)
        )


class SyntheticPriceProvider(PriceSeriesProvider):
    """Deterministic geometric Brownian motion on a weekday calendar.

    Each symbol gets its own random stream derived from ``seed`` and the
    symbol name, so a request always sees the same series no matter which
    other symbols were loaded before it. The walk starts at ``start_price`` on
    ``epoch`` and is sliced to the requested window, so a calendar day has one
    price whatever window asks for it. Windows opening before ``epoch`` start
    their own walk.

    Usage::

        provider = SyntheticPriceProvider(seed=42)
        bars = provider.load_bars("AAPL", date(2023, 1, 1), date(2023, 12, 31))
    """

    def __init__(
        self,
        seed: int = 42,
        start_price: float = 100.0,
        annual_drift: float = 0.10,
        annual_vol: float = 0.25,
        epoch: date = SYNTHETIC_EPOCH,
    ) -> None:
        self.seed = seed
        self.start_price = start_price
        self.annual_drift = annual_drift
        self.annual_vol = annual_vol
        self.epoch = epoch

    def load_bars(self, symbol: str, start: date, end: date) -> tuple[PriceBar, ...]:
        rng = random.Random(self.seed ^ zlib.crc32(symbol.upper().encode("utf-8")))
        daily_drift = self.annual_drift / 252.0
        daily_vol = self.annual_vol / math.sqrt(252.0)

        bars: list[PriceBar] = []
        price = self.start_price
        current = min(start, self.epoch)
        while current <= end:
            if current.weekday() >= 5:
                current += timedelta(days=1)
                continue

            z = rng.gauss(0, 1)
            close = price * math.exp(daily_drift - 0.5 * daily_vol**2 + daily_vol * z)

            half_range = close * (abs(rng.gauss(0, daily_vol * 0.7)) + daily_vol * 0.3) * 0.5
            open_ = max(price + rng.gauss(0, close * 0.002), price * 0.90)
            high = max(open_, close) + abs(rng.gauss(0, half_range * 0.8))
            low = min(open_, close) - abs(rng.gauss(0, half_range * 0.8))
            low = max(low, close * 0.90)  # cap max intraday loss at 10%
            volume = max(10_000, int(rng.lognormvariate(13.8, 0.8)))

            open_, close = round(open_, 4), round(close, 4)
            if current >= start:
                bars.append(PriceBar(
                    date=current,
                    open=open_,
                    high=max(round(high, 4), open_, close),
                    low=min(round(low, 4), open_, close),
                    close=close,
                    volume=float(volume),
                ))
            price = close
            current += timedelta(days=1)

        return tuple(bars)


def build_provider(config: DataConfig) -> PriceSeriesProvider:
    if config.provider == "csv":
        return CsvPriceProvider(config.csv_dir)
    return SyntheticPriceProvider(seed=config.synthetic_seed, start_price=config.synthetic_start_price)
