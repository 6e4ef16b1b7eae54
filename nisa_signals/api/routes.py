"""
Route handlers.

Handlers pull the ``AppConfig``, ``AppViewsRepository`` and
``RecommendationOrchestrator`` from ``request.app.state`` (set by
``create_app()``), so tests can mount the same router over a fake
market-data source.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from nisa_signals.config import AppConfig
from nisa_signals.ingestion.app_views import AppViewsRepository
from nisa_signals.models.candidate import RecommendationLists
from nisa_signals.models.signal import ScoreResult
from nisa_signals.pipeline.analysis import analyse_series, prepare_series
from nisa_signals.pipeline.recommend import RecommendationOrchestrator
from nisa_signals.api.schemas import ScoreRequest
from nisa_signals.taxonomy.signal_taxonomy import Horizon

logger = logging.getLogger(__name__)

router = APIRouter(tags=["signals"])


@router.get("/recommend", response_model=RecommendationLists)
async def recommend(
    request: Request,
    api_key: Optional[str] = Query(default=None, alias="apiKey"),
    symbols: list[str] = Query(default=[]),
    limit:   Optional[int] = Query(default=None, ge=1),
    mode:    Horizon = Query(default=Horizon.LONG),
) -> RecommendationLists:
    """Popular symbols, ETF picks and buy candidates.

    ``symbols`` accepts a comma-separated value, repeated parameters, or both.
    Each distinct requested symbol is recorded as one view.
    """
    config: AppConfig = request.app.state.config
    orchestrator: RecommendationOrchestrator = request.app.state.orchestrator

    key = api_key or config.market_data.default_api_key
    if not key:
        raise HTTPException(status_code=400, detail="apiKey is required.")

    requested = [s for raw in symbols for s in raw.split(",") if s.strip()]
    views: AppViewsRepository = request.app.state.app_views
    for symbol in dict.fromkeys(s.strip().upper() for s in requested):
        views.record_view(symbol)
    return await orchestrator.build(api_key=key, symbols=requested, limit=limit, mode=mode)


@router.post("/score", response_model=ScoreResult)
def score(request: Request, body: ScoreRequest) -> ScoreResult:
    """Decision, confidence and reasons for caller-supplied series."""
    config: AppConfig = request.app.state.config
    if body.symbol and body.symbol.strip():
        request.app.state.app_views.record_view(body.symbol)
    dailies, monthlies = prepare_series(
        body.dailies,
        body.monthlies,
        timeframe_months=body.timeframe_months,
        price_scale=body.price_scale,
        trading_days_per_month=config.recommend.trading_days_per_month,
    )
    result = analyse_series(
        dailies,
        monthlies,
        mode=body.mode,
        profile=body.profile,
        overview=body.overview,
        config=config,
    )
    logger.info(
        "Scored %d daily bars (mode=%s): %s %.2f",
        len(dailies), body.mode, result.decision, result.confidence,
    )
    return result
