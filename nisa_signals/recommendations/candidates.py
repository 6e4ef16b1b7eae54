"""
Candidate scoring: auxiliary composites used to order recommendation pools.

These scores never influence the BUY/SELL decision itself.  They measure how
attractive an already-decided symbol is relative to the rest of the pool.

Popularity score
----------------
    0.35 × log10(max(1, average_volume))
  + 0.25 × max(0, rel_volume − 0.5)          rel_volume = mean(ratio5, ratio20)
  + 0.30 × trend_flags                        0–4 bullish alignments
  + 0.25 × momentum                           (t1·0.5 + t3·1.5 + t12·0.5) / 10
  + 0.20 × dist_score                         max(0, 1 − dist52w / 25)
  + 0.15 × rsi_score                          1 − |rsi − 55| / 35

trend_flags counts sma20 > sma50, sma50 > sma200, close > sma50 and
close > sma200.  ``rsi_score`` goes negative once RSI is more than 35
points from 55.  Absent inputs contribute 0.

ETF score
---------
    0.5 × max(0, 1.2 − expense_pct)
  + 0.3 × mean(max(0, 1.5 − atr_pct / 4), max(0, 1.5 − max_drawdown / 35))
  + 0.2 × max(0, (t3·0.7 + t12·0.3) / 12)

Missing ETF metrics fall back to neutral constants (0.6 expense, 0.7 risk,
0.6 momentum) so a thin profile does not disqualify a fund.

Pool confidence
---------------
``adjust_confidence()`` maps a raw score's share of the pool maximum into
[0.35, 0.85] and keeps the larger of that and the decision confidence.
"""

from __future__ import annotations

import math
from typing import Optional

from nisa_signals.config import CandidateScoringConfig
from nisa_signals.models.candidate import CandidateSnapshot

_DEFAULT_CONFIG = CandidateScoringConfig()


def popularity_score(
    snapshot: CandidateSnapshot,
    config:   Optional[CandidateScoringConfig] = None,
) -> float:
    """General attractiveness composite for any instrument."""
    cfg = config or _DEFAULT_CONFIG
    ind = snapshot.indicators

    volume_term = math.log10(max(1.0, snapshot.average_volume))

    ratios = [r for r in (ind.volume_ratio5, ind.volume_ratio20) if r is not None]
    rel_volume = sum(ratios) / len(ratios) if ratios else 0.0
    rel_volume_term = max(0.0, rel_volume - cfg.rel_volume_offset)

    momentum = (
        _or_zero(snapshot.monthly_trend1) * cfg.momentum_1m_weight
        + _or_zero(snapshot.monthly_trend3) * cfg.momentum_3m_weight
        + _or_zero(snapshot.monthly_trend12) * cfg.momentum_12m_weight
    ) / cfg.momentum_divisor

    dist = ind.dist_from_52w_high
    dist_score = (
        max(0.0, 1.0 - dist / cfg.distance_horizon_pct) if dist is not None else 0.0
    )

    rsi_score = (
        1.0 - abs(ind.rsi14 - cfg.rsi_center) / cfg.rsi_band
        if ind.rsi14 is not None else 0.0
    )

    return (
        cfg.volume_weight * volume_term
        + cfg.rel_volume_weight * rel_volume_term
        + cfg.trend_flag_weight * trend_flag_count(snapshot)
        + cfg.momentum_weight * momentum
        + cfg.distance_weight * dist_score
        + cfg.rsi_weight * rsi_score
    )


def trend_flag_count(snapshot: CandidateSnapshot) -> int:
    """Number of bullish moving-average alignments (0–4)."""
    ind = snapshot.indicators
    close = snapshot.latest_close
    flags = 0
    if ind.sma20 is not None and ind.sma50 is not None and ind.sma20 > ind.sma50:
        flags += 1
    if ind.sma50 is not None and ind.sma200 is not None and ind.sma50 > ind.sma200:
        flags += 1
    if close is not None and ind.sma50 is not None and close > ind.sma50:
        flags += 1
    if close is not None and ind.sma200 is not None and close > ind.sma200:
        flags += 1
    return flags


def etf_score(
    snapshot: CandidateSnapshot,
    config:   Optional[CandidateScoringConfig] = None,
) -> float:
    """Fund quality composite: cost, risk and medium-term momentum."""
    cfg = config or _DEFAULT_CONFIG
    ind = snapshot.indicators

    # Snapshot stores the expense ratio as a fraction; the curve is in percent.
    if snapshot.expense_ratio is not None:
        expense = max(0.0, cfg.expense_ceiling - snapshot.expense_ratio * 100.0)
    else:
        expense = cfg.neutral_expense_score

    close = snapshot.latest_close
    if ind.atr14 is not None and close:
        atr_pct = ind.atr14 / close * 100.0
        volatility = max(0.0, cfg.volatility_ceiling - atr_pct / cfg.volatility_divisor)
    else:
        volatility = cfg.neutral_risk_score

    if ind.max_drawdown is not None:
        drawdown = max(0.0, cfg.drawdown_ceiling - ind.max_drawdown / cfg.drawdown_divisor)
    else:
        drawdown = cfg.neutral_risk_score

    if snapshot.monthly_trend3 is not None or snapshot.monthly_trend12 is not None:
        momentum = max(
            0.0,
            (
                _or_zero(snapshot.monthly_trend3) * cfg.etf_momentum_3m_weight
                + _or_zero(snapshot.monthly_trend12) * cfg.etf_momentum_12m_weight
            ) / cfg.etf_momentum_divisor,
        )
    else:
        momentum = cfg.neutral_momentum_score

    return (
        cfg.etf_expense_weight * expense
        + cfg.etf_risk_weight * (volatility + drawdown) / 2.0
        + cfg.etf_momentum_weight * momentum
    )


def adjust_confidence(
    base_confidence: float,
    raw_score:       float,
    max_score:       float,
    config:          Optional[CandidateScoringConfig] = None,
) -> float:
    """Raise (never lower) a decision confidence by the symbol's pool strength.

    Args:
        base_confidence: Confidence from the decision engine.
        raw_score:       The symbol's composite score.
        max_score:       Largest composite score in the same pool.

    Returns:
        ``max(base_confidence, 0.35 + 0.5 × clamp(raw / max, 0, 1))``.
    """
    cfg = config or _DEFAULT_CONFIG
    share = _clamp(raw_score / max_score, 0.0, 1.0) if max_score > 0 else 0.0
    derived = cfg.confidence_low + share * (cfg.confidence_high - cfg.confidence_low)
    return max(base_confidence, derived)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _or_zero(value: Optional[float]) -> float:
    return value if value is not None else 0.0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
