from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query, Request

from backtestlab.api.store import ResultStore
from backtestlab.backtest.comparison import compare_results
from backtestlab.backtest.engine import BacktestEngine
from backtestlab.core.exceptions import (
    BacktestLabError,
    DataIntegrityError,
    OptimizationError,
    ValidationError,
)
from backtestlab.optimize.optimizer import Optimizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/backtest", tags=["backtest"])


def _http_error(exc: BacktestLabError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, (DataIntegrityError, OptimizationError)):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _engine(request: Request) -> BacktestEngine:
    return request.app.state.engine


def _optimizer(request: Request) -> Optimizer:
    return request.app.state.optimizer


def _store(request: Request) -> ResultStore:
    return request.app.state.store


@router.get("/health")
def health_check(request: Request):
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "strategies": len(_engine(request).registry.all()),
    }


@router.get("/strategies")
def list_strategies(request: Request):
    return _engine(request).registry.catalogue()


@router.post("/run")
def run_backtest(request: Request, payload: dict[str, Any] = Body(...)):
    try:
        result = _engine(request).run(payload)
    except BacktestLabError as exc:
        logger.warning("Backtest rejected: %s", exc)
        raise _http_error(exc) from exc
    result_id = _store(request).save(result)
    return {"id": result_id, **result.to_dict()}


@router.post("/optimize")
def optimize(request: Request, payload: dict[str, Any] = Body(...)):
    try:
        result = _optimizer(request).optimize(payload)
    except BacktestLabError as exc:
        logger.warning("Optimization rejected: %s", exc)
        raise _http_error(exc) from exc
    return result.to_dict()


@router.get("/history")
def history(request: Request):
    limit = request.app.state.settings.api.history_size
    return [
        {"id": rid, "executedAt": saved_at.isoformat(), **result.summary()}
        for rid, saved_at, result in _store(request).recent(limit)
    ]


@router.get("/compare")
def compare(request: Request, ids: list[int] = Query(...)):
    store = _store(request)
    results = {}
    for result_id in dict.fromkeys(ids):
        result = store.get(result_id)
        if result is None:
            raise HTTPException(status_code=404, detail=f"Backtest {result_id} not found")
        results[result_id] = result
    try:
        return compare_results(results)
    except BacktestLabError as exc:
        raise _http_error(exc) from exc


@router.get("/{result_id}")
def get_result(request: Request, result_id: int):
    result = _store(request).get(result_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Backtest {result_id} not found")
    return {"id": result_id, **result.to_dict()}
