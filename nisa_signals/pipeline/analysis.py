"""
Single-symbol analysis: series → indicators → anomalies → decision → snapshot.

Shared by ``POST /score`` (series supplied by the caller) and the
recommendation orchestrator (series fetched from the market-data source).
Everything here is synchronous and I/O-free.

Series options
--------------
``prepare_series()`` applies the two request options before scoring:

    timeframe_months  keep the trailing ``months × trading_days_per_month``
                      daily bars (monthly bars are untouched)
    price_scale       multiply every price field, daily and monthly;
                      volume and split coefficients are never scaled
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from nisa_signals.config import AppConfig
from nisa_signals.indicators.anomalies import detect_anomalies
from nisa_signals.indicators.technical import (
    average_volume,
    build_indicator_set,
    monthly_trend,
)
from nisa_signals.models.candidate import CandidateSnapshot
from nisa_signals.models.profile import EtfProfile, OverviewProfile
from nisa_signals.models.series import DailyPoint, MonthlyPoint
from nisa_signals.models.signal import ScoreResult
from nisa_signals.recommendations.scorer import decide
from nisa_signals.taxonomy.signal_taxonomy import Horizon, InstrumentType

logger = logging.getLogger(__name__)

_DAILY_PRICE_FIELDS = ("open", "high", "low", "close", "adjusted_close", "dividend")
_MONTHLY_PRICE_FIELDS = ("close", "adjusted_close", "dividend")


def prepare_series(
    dailies:                Sequence[DailyPoint],
    monthlies:              Sequence[MonthlyPoint],
    timeframe_months:       Optional[int] = None,
    price_scale:            Optional[float] = None,
    trading_days_per_month: int = 21,
) -> tuple[list[DailyPoint], list[MonthlyPoint]]:
    """Trim and rescale series ahead of scoring.

    Raises:
        ValueError: If ``timeframe_months`` or ``price_scale`` is not positive.
    """
    daily = list(dailies)
    monthly = list(monthlies)

    if timeframe_months is not None:
        if timeframe_months <= 0:
            raise ValueError(f"timeframe_months must be positive, got {timeframe_months}.")
        daily = daily[-(timeframe_months * trading_days_per_month):]

    if price_scale is not None and price_scale != 1:
        if price_scale <= 0:
            raise ValueError(f"price_scale must be positive, got {price_scale}.")
        daily = [_scaled(p, _DAILY_PRICE_FIELDS, price_scale) for p in daily]
        monthly = [_scaled(p, _MONTHLY_PRICE_FIELDS, price_scale) for p in monthly]

    return daily, monthly


def analyse_series(
    dailies:   Sequence[DailyPoint],
    monthlies: Sequence[MonthlyPoint],
    mode:      Horizon | str = Horizon.LONG,
    profile:   Optional[EtfProfile] = None,
    overview:  Optional[OverviewProfile] = None,
    config:    Optional[AppConfig] = None,
) -> ScoreResult:
    """Run the indicator engine, anomaly detector and decision engine."""
    cfg = config or AppConfig()
    metrics = build_indicator_set(dailies, monthlies)
    anomalies = detect_anomalies(dailies)
    if anomalies:
        logger.debug("Abstaining: %d anomalies (%s)", len(anomalies), anomalies[0])
    return decide(
        metrics,
        dailies,
        monthlies,
        mode=mode,
        profile=profile,
        overview=overview,
        anomalies=anomalies,
        thresholds=cfg.thresholds,
        config=cfg.decision,
    )


def build_snapshot(
    symbol:    str,
    dailies:   Sequence[DailyPoint],
    monthlies: Sequence[MonthlyPoint],
    result:    ScoreResult,
    profile:   Optional[EtfProfile] = None,
    overview:  Optional[OverviewProfile] = None,
    lookback_days: int = 30,
) -> CandidateSnapshot:
    """Assemble the ranking input for one analysed symbol.

    Instrument type is ETF when a fund profile exists, EQUITY when only an
    overview exists, otherwise UNKNOWN.  Percent-valued profile fields are
    converted to fractions.  ``app_views`` and the candidate scores are
    attached later by the orchestrator.
    """
    if profile is not None:
        instrument_type = InstrumentType.ETF
    elif overview is not None:
        instrument_type = InstrumentType.EQUITY
    else:
        instrument_type = InstrumentType.UNKNOWN

    name = (overview.name if overview else "") or (profile.name if profile else "") or symbol

    expense_ratio = (
        profile.expense_ratio / 100.0
        if profile is not None and profile.expense_ratio is not None
        else None
    )

    yield_pct = result.metrics.dividend_yield_trailing
    if yield_pct is None and overview is not None:
        yield_pct = overview.dividend_yield
    distribution_yield = yield_pct / 100.0 if yield_pct is not None else None

    return CandidateSnapshot(
        symbol=symbol,
        name=name,
        instrument_type=instrument_type,
        decision=result.decision,
        confidence=result.confidence,
        indicators=result.metrics,
        average_volume=average_volume(dailies, lookback_days),
        monthly_trend1=monthly_trend(monthlies, 1),
        monthly_trend3=monthly_trend(monthlies, 3),
        monthly_trend12=monthly_trend(monthlies, 12),
        latest_close=dailies[-1].adjusted_close if dailies else None,
        expense_ratio=expense_ratio,
        distribution_yield=distribution_yield,
    )


# ── Helper ────────────────────────────────────────────────────────────────────

def _scaled(point, fields: Sequence[str], factor: float):
    return point.model_copy(update={f: getattr(point, f) * factor for f in fields})
