#!/usr/bin/env python
"""Run a backtest or a grid-search optimization from the command line.

Usage:
    python scripts/run_backtest.py AAPL --strategy MOVING_AVERAGE --param shortPeriod=10
    python scripts/run_backtest.py AAPL --strategy RSI --optimize \
        --range period=10:20:2 --range oversoldLevel=20:35:5 --target SHARPE_RATIO
    python scripts/run_backtest.py AAPL --config config/default.yaml --json result.json
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from backtestlab.backtest.engine import BacktestEngine
from backtestlab.core.config import Settings, load_settings
from backtestlab.core.exceptions import BacktestLabError
from backtestlab.core.logger import configure_logging
from backtestlab.data.provider import build_provider
from backtestlab.optimize.optimizer import Optimizer

_DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


def _parse_value(raw: str) -> int | float | str:
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def _parse_params(items: list[str]) -> dict[str, int | float | str]:
    params: dict[str, int | float | str] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep:
            raise SystemExit(f"Error: expected name=value, got {item!r}")
        params[name] = _parse_value(value)
    return params


def _parse_ranges(items: list[str]) -> dict[str, dict[str, float]]:
    ranges: dict[str, dict[str, float]] = {}
    for item in items:
        name, sep, spec = item.partition("=")
        bounds = spec.split(":")
        if not sep or len(bounds) != 3:
            raise SystemExit(f"Error: expected name=min:max:step, got {item!r}")
        lo, hi, step = (float(b) for b in bounds)
        ranges[name] = {"min": lo, "max": hi, "step": step}
    return ranges


def _fmt(value: float | None, spec: str = ".2f") -> str:
    return "--" if value is None else format(value, spec)


def _print_backtest(result: dict) -> None:
    print("=" * 64)
    print(f"  {result['symbol']} {result['strategyName']} {result['parameters']}")
    print(f"  Period     : {result['startDate']} to {result['endDate']}")
    print("=" * 64)
    print(f"  Initial    : ${result['initialCapital']:,.2f}")
    print(f"  Final      : ${result['finalCapital']:,.2f}")
    print(f"  Return     : {result['totalReturn']:+.2f}%   CAGR {result['cagr']:+.2f}%")
    print(f"  Max DD     : {result['maxDrawdown']:.2f}%")
    print(
        f"  Sharpe     : {_fmt(result['sharpeRatio'])}   Sortino {_fmt(result['sortinoRatio'])}"
        f"   Calmar {_fmt(result['calmarRatio'])}"
    )
    print(
        f"  Trades     : {result['totalTrades']} (win rate {result['winRate']:.1f}%,"
        f" PF {_fmt(result['profitFactor'])})"
    )
    print(f"  Streaks    : {result['maxWinStreak']}W / {result['maxLossStreak']}L")
    print(f"  Elapsed    : {result['executionTimeMs']}ms")


def _print_optimization(result: dict, top: int) -> None:
    print("=" * 64)
    print(f"  Optimization target {result['target']}")
    print(
        f"  Combinations: {result['totalCombinations']} total,"
        f" {result['completedCombinations']} ok, {len(result['failedResults'])} failed,"
        f" {result['skippedCombinations'] - len(result['failedResults'])} not run"
    )
    print(f"  Best       : {result['bestParameters']}")
    print("=" * 64)
    print(f"  {'#':>3}  {'Target':>10}{'Return':>10}{'MDD':>9}{'Sharpe':>9}{'Trades':>8}  Parameters")
    for i, row in enumerate(result["allResults"][:top], start=1):
        print(
            f"  {i:>3}  {_fmt(row['targetValue']):>10}{row['totalReturn']:>+9.2f}%"
            f"{row['maxDrawdown']:>8.2f}%{row['sharpeRatio']:>9.2f}{row['totalTrades']:>8}"
            f"  {row['parameters']}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Strategy backtest / optimization runner")
    parser.add_argument("symbol", help="Ticker symbol")
    parser.add_argument("--config", help="Settings YAML (default: config/default.yaml)")
    parser.add_argument("--strategy", default="MOVING_AVERAGE", help="Strategy type")
    parser.add_argument("--param", action="append", default=[], help="Strategy parameter name=value")
    parser.add_argument("--start", default="2023-01-01", help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", default="2024-12-31", help="End date (YYYY-MM-DD)")
    parser.add_argument("--capital", type=float, default=10_000_000.0, help="Initial capital")
    parser.add_argument("--position-size", type=float, default=100.0, help="Percent of capital per entry")
    parser.add_argument("--commission", type=float, default=0.0, help="Commission rate (fraction)")
    parser.add_argument("--slippage", type=float, default=0.0, help="Slippage (fraction)")
    parser.add_argument("--stop-loss", type=float, help="Stop-loss percent")
    parser.add_argument("--take-profit", type=float, help="Take-profit percent")
    parser.add_argument("--optimize", action="store_true", help="Run a grid search over --range")
    parser.add_argument("--range", action="append", default=[], help="Grid range name=min:max:step")
    parser.add_argument("--target", default="TOTAL_RETURN", help="Optimization target metric")
    parser.add_argument("--top", type=int, default=10, help="Rows to show for an optimization")
    parser.add_argument("--json", dest="json_path", help="Write the full result JSON to this file")
    args = parser.parse_args()

    config_path = Path(args.config) if args.config else _DEFAULT_CONFIG
    settings = load_settings(config_path) if config_path.exists() else Settings()
    configure_logging(settings.system)

    payload = {
        "symbol": args.symbol,
        "startDate": args.start,
        "endDate": args.end,
        "initialCapital": args.capital,
        "positionSizePercent": args.position_size,
        "commissionRate": args.commission,
        "slippage": args.slippage,
        "stopLossPercent": args.stop_loss,
        "takeProfitPercent": args.take_profit,
    }
    engine = BacktestEngine(build_provider(settings.data))

    try:
        if args.optimize:
            payload.update(
                strategyType=args.strategy.upper(),
                strategyParams=_parse_params(args.param),
                parameterRanges=_parse_ranges(args.range),
                target=args.target.upper(),
            )
            result = Optimizer(engine, settings.optimizer).optimize(payload).to_dict()
            _print_optimization(result, args.top)
        else:
            payload["strategy"] = {"type": args.strategy.upper(), "parameters": _parse_params(args.param)}
            result = engine.run(payload).to_dict()
            _print_backtest(result)
    except BacktestLabError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json_path:
        out_path = Path(args.json_path)
        out_path.write_text(json.dumps(result, indent=2), encoding="utf-8")
        print(f"Result saved to {out_path}")


if __name__ == "__main__":
    main()
