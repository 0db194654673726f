"""Recent backtest results, kept so the history and detail endpoints can serve them."""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime

from backtestlab.backtest.models import BacktestResult


class ResultStore(ABC):
    @abstractmethod
    def save(self, result: BacktestResult) -> int:
        """Persist ``result`` and return its id."""

    @abstractmethod
    def get(self, result_id: int) -> BacktestResult | None: ...

    @abstractmethod
    def recent(self, limit: int) -> list[tuple[int, datetime, BacktestResult]]:
        """Newest first."""


class InMemoryResultStore(ResultStore):
    """Bounded in-process store; the oldest entries are evicted first."""

    def __init__(self, max_entries: int = 500) -> None:
        self._max_entries = max_entries
        self._entries: OrderedDict[int, tuple[datetime, BacktestResult]] = OrderedDict()
        self._next_id = 1
        self._lock = threading.Lock()

    def save(self, result: BacktestResult) -> int:
        with self._lock:
            result_id = self._next_id
            self._next_id += 1
            self._entries[result_id] = (datetime.now(), result)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
            return result_id

    def get(self, result_id: int) -> BacktestResult | None:
        with self._lock:
            entry = self._entries.get(result_id)
        return entry[1] if entry else None

    def recent(self, limit: int) -> list[tuple[int, datetime, BacktestResult]]:
        with self._lock:
            items = list(self._entries.items())
        return [(rid, saved_at, result) for rid, (saved_at, result) in reversed(items)][:limit]
