"""
FastAPI application factory.

``create_app()`` wires config, the view-count repository, the market-data
source and the orchestrator into ``app.state``.  When neither an
orchestrator nor a source is injected, an ``AlphaVantageClient`` is created
and closed with the application lifespan.

The view repository is seeded from ``[[app_views.seed]]`` and shared by the
orchestrator and the route handlers, which record a view for every requested
symbol.  When injecting an orchestrator, pass it the same ``app_views``.

Run with::

    uvicorn --factory nisa_signals.api.app:create_app
    nisa-signals serve
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from nisa_signals import __version__
from nisa_signals.api.routes import router
from nisa_signals.config import AppConfig, load_config
from nisa_signals.ingestion.alpha_vantage_client import AlphaVantageClient
from nisa_signals.ingestion.app_views import AppViewsRepository
from nisa_signals.pipeline.recommend import (
    MarketDataSource,
    RecommendationOrchestrator,
    UniverseFetchError,
)

logger = logging.getLogger(__name__)


def create_app(
    config:       Optional[AppConfig] = None,
    orchestrator: Optional[RecommendationOrchestrator] = None,
    source:       Optional[MarketDataSource] = None,
    app_views:    Optional[AppViewsRepository] = None,
) -> FastAPI:
    cfg = config or load_config()
    if app_views is None:
        app_views = AppViewsRepository.from_records(
            seed.model_dump() for seed in cfg.app_views.seed
        )

    client: Optional[AlphaVantageClient] = None
    if orchestrator is None:
        if source is None:
            client = AlphaVantageClient(cfg.market_data)
            source = client
        orchestrator = RecommendationOrchestrator(cfg, source, app_views)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if client is not None:
            await client.aclose()

    app = FastAPI(title="NISA Signals", version=__version__, lifespan=lifespan)
    app.state.config = cfg
    app.state.app_views = app_views
    app.state.orchestrator = orchestrator

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    @app.exception_handler(UniverseFetchError)
    async def universe_fetch_failed(request: Request, exc: UniverseFetchError):
        logger.error("GET %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    app.include_router(router)
    return app
