"""Side-by-side comparison of finished backtests.

Each metric ranking lists results best first; results lacking the metric
(``None``) are left out of that ranking. The overall score weights total
return and Sharpe 30 each, win rate 20 and low drawdown 20, each normalized
by the best value among the compared results.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from backtestlab.backtest.models import BacktestResult
from backtestlab.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

MetricGetter = Callable[[BacktestResult], float | None]

_RANKED_METRICS: dict[str, tuple[MetricGetter, bool]] = {
    "totalReturn": (lambda r: r.metrics.total_return, True),
    "cagr": (lambda r: r.metrics.cagr, True),
    "sharpeRatio": (lambda r: r.metrics.sharpe_ratio, True),
    "maxDrawdown": (lambda r: r.metrics.max_drawdown, False),
    "winRate": (lambda r: r.metrics.win_rate, True),
    "profitFactor": (lambda r: r.metrics.profit_factor, True),
}


def compare_results(results: Mapping[int, BacktestResult]) -> dict:
    """Compare two or more results keyed by their stored id.

    Raises:
        ValidationError: Fewer than two results were supplied.
    """
    if len(results) < 2:
        raise ValidationError("at least two backtests are required for a comparison")

    logger.info("Comparing %d backtests: %s", len(results), list(results))
    rankings = {
        name: _rank(results, {key: getter(r) for key, r in results.items()}, descending)
        for name, (getter, descending) in _RANKED_METRICS.items()
    }
    rankings["overallScore"] = _rank_overall(results)

    return {
        "backtests": [{"id": key, **result.summary()} for key, result in results.items()],
        "rankings": rankings,
        "summary": _summary(results),
    }


def _rank(
    results: Mapping[int, BacktestResult],
    values: Mapping[int, float | None],
    descending: bool,
) -> list[dict]:
    scored = [(key, value) for key, value in values.items() if value is not None]
    scored.sort(key=lambda kv: kv[1], reverse=descending)
    return [
        {
            "rank": i + 1,
            "id": key,
            "strategyName": results[key].strategy_name,
            "value": value,
        }
        for i, (key, value) in enumerate(scored)
    ]


def _rank_overall(results: Mapping[int, BacktestResult]) -> list[dict]:
    max_return = max(r.metrics.total_return for r in results.values())
    max_sharpe = max(r.metrics.sharpe_ratio for r in results.values())
    max_win_rate = max(r.metrics.win_rate for r in results.values())
    max_drawdown = max(r.metrics.max_drawdown for r in results.values())

    scores: dict[int, float] = {}
    for key, r in results.items():
        m = r.metrics
        score = 0.0
        if max_return > 0:
            score += m.total_return / max_return * 30
        if max_sharpe > 0:
            score += m.sharpe_ratio / max_sharpe * 30
        if max_win_rate > 0:
            score += m.win_rate / max_win_rate * 20
        if max_drawdown > 0:
            score += (1 - m.max_drawdown / max_drawdown) * 20
        scores[key] = round(score, 2)
    return _rank(results, scores, True)


def _summary(results: Mapping[int, BacktestResult]) -> dict:
    items = list(results.items())
    best_return = max(items, key=lambda kv: kv[1].metrics.total_return)
    worst_return = min(items, key=lambda kv: kv[1].metrics.total_return)
    best_sharpe = max(items, key=lambda kv: kv[1].metrics.sharpe_ratio)
    lowest_drawdown = min(items, key=lambda kv: kv[1].metrics.max_drawdown)
    count = len(items)

    def _pick(kv: tuple[int, BacktestResult], value: float) -> dict:
        return {"id": kv[0], "strategyName": kv[1].strategy_name, "value": value}

    return {
        "count": count,
        "bestReturn": _pick(best_return, best_return[1].metrics.total_return),
        "worstReturn": _pick(worst_return, worst_return[1].metrics.total_return),
        "bestSharpe": _pick(best_sharpe, best_sharpe[1].metrics.sharpe_ratio),
        "lowestDrawdown": _pick(lowest_drawdown, lowest_drawdown[1].metrics.max_drawdown),
        "avgReturn": sum(r.metrics.total_return for _, r in items) / count,
        "avgSharpe": sum(r.metrics.sharpe_ratio for _, r in items) / count,
        "avgMaxDrawdown": sum(r.metrics.max_drawdown for _, r in items) / count,
    }
