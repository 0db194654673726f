from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backtestlab.api.routes import router
from backtestlab.api.store import InMemoryResultStore, ResultStore
from backtestlab.backtest.engine import BacktestEngine
from backtestlab.core.config import Settings
from backtestlab.core.logger import configure_logging
from backtestlab.data.provider import build_provider
from backtestlab.optimize.optimizer import Optimizer


def create_app(
    settings: Settings | None = None,
    engine: BacktestEngine | None = None,
    store: ResultStore | None = None,
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.system)

    app = FastAPI(title=settings.api.title, version=settings.api.version)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = engine or BacktestEngine(build_provider(settings.data))
    app.state.settings = settings
    app.state.engine = engine
    app.state.optimizer = Optimizer(engine, settings.optimizer)
    app.state.store = store or InMemoryResultStore()

    app.include_router(router)

    @app.get("/")
    def root():
        return {"message": settings.api.title, "version": settings.api.version}

    return app
