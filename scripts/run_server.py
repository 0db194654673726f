#!/usr/bin/env python
"""Serve the backtest HTTP API with uvicorn.

Usage:
    python scripts/run_server.py --config config/default.yaml --port 8000
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import uvicorn

from backtestlab.api.app import create_app
from backtestlab.core.config import Settings, load_settings

_DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


def main() -> None:
    parser = argparse.ArgumentParser(description="Backtest API server")
    parser.add_argument("--config", help="Settings YAML (default: config/default.yaml)")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    config_path = Path(args.config) if args.config else _DEFAULT_CONFIG
    settings = load_settings(config_path) if config_path.exists() else Settings()
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
