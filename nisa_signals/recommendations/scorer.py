"""
Decision scoring: converts an IndicatorSet (+ optional fundamentals) into a
BUY / SELL / NEUTRAL / ABSTAIN decision with itemised reasoning.

Score formula (additive points, present indicators only)
--------------------------------------------------------
    Price vs SMA200        close > sma200            +2 / −2
    SMA50 vs SMA200        sma50 > sma200            +2 / −2
    SMA20 vs SMA50         sma20 > sma50             +1 / −1
    RSI14                  45–60 / <35 / > upper     +1 / −2 / −2
                           (upper = 65 swing, 70 long)
    MACD vs signal         macd > signal             +1 / −1
    ATR ratio              >5% and fell / <3% and rose   −2 / +1
    Volume surge           ratio5 > 1.5 and rose / fell  +2 / −2
    52w-high distance      <10% / >25%               +1 / −1
    Max drawdown           >25%                      −1
    Dividend yield         >3% (trailing, else overview)  +1
    ETF expense ratio      >0.6% / <0.2%             −1 / +1

Missing indicators contribute nothing; they are never penalised.  Each
applied rule emits a ``ScoreReason`` whose weight is its literal point
contribution, so ``sum(reasons) + sum(counters)`` reproduces the score.

Decision (mode thresholds, defaults long ±5, swing ±4)
------------------------------------------------------
    score >= buy   → BUY
    score <= sell  → SELL
    otherwise      → NEUTRAL

Confidence
----------
    clamp(0.15, 0.95, |score| / 10 + (0.1 if NEUTRAL else 0.2))

Abstention
----------
Empty daily or monthly series, or any detected anomaly, short-circuits to
ABSTAIN with confidence 0.1.  Anomaly messages become counters of weight −1.
"""

from __future__ import annotations

from typing import Optional, Sequence

from nisa_signals.config import DecisionConfig, ThresholdsConfig
from nisa_signals.models.profile import EtfProfile, OverviewProfile
from nisa_signals.models.series import DailyPoint, MonthlyPoint
from nisa_signals.models.signal import IndicatorSet, ScoreReason, ScoreResult
from nisa_signals.taxonomy.signal_taxonomy import Decision, Horizon

_DEFAULT_DECISION = DecisionConfig()
_DEFAULT_THRESHOLDS = ThresholdsConfig()


def decide(
    metrics:    IndicatorSet,
    dailies:    Sequence[DailyPoint],
    monthlies:  Sequence[MonthlyPoint],
    mode:       Horizon | str = Horizon.LONG,
    profile:    Optional[EtfProfile] = None,
    overview:   Optional[OverviewProfile] = None,
    anomalies:  Optional[Sequence[str]] = None,
    thresholds: Optional[ThresholdsConfig] = None,
    config:     Optional[DecisionConfig] = None,
) -> ScoreResult:
    """Score one symbol and map the score to a decision.

    Args:
        metrics:    Indicators from ``build_indicator_set()``.
        dailies:    Daily bars the metrics were computed from (ascending).
        monthlies:  Monthly bars (ascending).
        mode:       ``"long"`` or ``"swing"``; selects thresholds and RSI band.
        profile:    ETF profile; enables the expense-ratio rule.
        overview:   Equity overview; dividend-yield fallback.
        anomalies:  Output of ``detect_anomalies()``; non-empty forces ABSTAIN.
        thresholds: Per-mode buy/sell boundaries (defaults long ±5, swing ±4).
        config:     Rule boundaries and weights.

    Returns:
        ``ScoreResult`` with decision, confidence, reasons and counters.
    """
    cfg = config or _DEFAULT_DECISION
    horizon = Horizon(mode)

    if not dailies or not monthlies or anomalies:
        return ScoreResult(
            decision=Decision.ABSTAIN,
            confidence=cfg.abstain_confidence,
            reasons=[],
            counters=[ScoreReason(label=text, weight=-1) for text in anomalies or []],
            metrics=metrics,
            horizon=horizon,
        )

    latest = dailies[-1].adjusted_close
    prev: Optional[float] = dailies[-2].adjusted_close if len(dailies) >= 2 else None

    positives: list[ScoreReason] = []
    negatives: list[ScoreReason] = []

    def apply(weight: float, label: str) -> None:
        if weight >= 0:
            positives.append(ScoreReason(label=f"+{weight:g}: {label}", weight=weight))
        else:
            negatives.append(ScoreReason(label=f"{weight:g}: {label}", weight=weight))

    # ── Trend structure ───────────────────────────────────────────────────────
    if metrics.sma200 is not None:
        if latest > metrics.sma200:
            apply(cfg.sma200_weight, f"close {latest:.2f} above SMA200 ({metrics.sma200:.2f})")
        else:
            apply(-cfg.sma200_weight, f"close {latest:.2f} below SMA200 ({metrics.sma200:.2f})")

    if metrics.sma50 is not None and metrics.sma200 is not None:
        if metrics.sma50 > metrics.sma200:
            apply(cfg.cross_weight, f"SMA50 ({metrics.sma50:.2f}) above SMA200 ({metrics.sma200:.2f})")
        else:
            apply(-cfg.cross_weight, f"SMA50 ({metrics.sma50:.2f}) below SMA200 ({metrics.sma200:.2f})")

    if metrics.sma20 is not None and metrics.sma50 is not None:
        if metrics.sma20 > metrics.sma50:
            apply(cfg.short_trend_weight, f"SMA20 ({metrics.sma20:.2f}) above SMA50 ({metrics.sma50:.2f})")
        else:
            apply(-cfg.short_trend_weight, f"SMA20 ({metrics.sma20:.2f}) below SMA50 ({metrics.sma50:.2f})")

    # ── Momentum ──────────────────────────────────────────────────────────────
    rsi = metrics.rsi14
    if rsi is not None:
        upper = cfg.rsi_upper(horizon)
        if cfg.rsi_healthy_low <= rsi <= cfg.rsi_healthy_high:
            apply(cfg.rsi_healthy_weight, f"RSI14 in healthy range ({rsi:.1f})")
        elif rsi < cfg.rsi_oversold:
            apply(-cfg.rsi_extreme_weight, f"RSI14 oversold ({rsi:.1f})")
        elif rsi > upper:
            apply(-cfg.rsi_extreme_weight, f"RSI14 overheated ({rsi:.1f} > {upper:g})")

    if metrics.macd is not None and metrics.macd_signal is not None:
        if metrics.macd > metrics.macd_signal:
            apply(cfg.macd_weight, f"MACD ({metrics.macd:.3f}) above signal ({metrics.macd_signal:.3f})")
        else:
            apply(-cfg.macd_weight, f"MACD ({metrics.macd:.3f}) below signal ({metrics.macd_signal:.3f})")

    # ── Volatility and volume (need the previous close) ───────────────────────
    if metrics.atr14 is not None and prev is not None and latest > 0 and prev > 0:
        atr_ratio = metrics.atr14 / latest * 100.0
        price_change = (latest - prev) / prev * 100.0
        if atr_ratio > cfg.atr_high_pct and price_change < 0:
            apply(-cfg.atr_high_weight, f"volatile decline, ATR {atr_ratio:.1f}% of close")
        elif atr_ratio < cfg.atr_low_pct and price_change > 0:
            apply(cfg.atr_low_weight, f"steady advance, ATR {atr_ratio:.1f}% of close")

    if (
        metrics.volume_ratio5 is not None
        and metrics.volume_ratio20 is not None
        and prev is not None
    ):
        ratio = metrics.volume_ratio5
        if ratio > cfg.volume_surge_ratio and latest > prev:
            apply(cfg.volume_surge_weight, f"volume surge {ratio:.2f}x on a rising close")
        elif ratio > cfg.volume_surge_ratio and latest < prev:
            apply(-cfg.volume_surge_weight, f"volume surge {ratio:.2f}x on a falling close")

    # ── Position in range ─────────────────────────────────────────────────────
    dist = metrics.dist_from_52w_high
    if dist is not None:
        if dist < cfg.near_high_pct:
            apply(cfg.high_distance_weight, f"{dist:.1f}% below 52-week high")
        elif dist > cfg.far_high_pct:
            apply(-cfg.high_distance_weight, f"{dist:.1f}% below 52-week high")

    if metrics.max_drawdown is not None and metrics.max_drawdown > cfg.max_drawdown_pct:
        apply(-cfg.drawdown_weight, f"max drawdown {metrics.max_drawdown:.1f}%")

    # ── Fundamentals ──────────────────────────────────────────────────────────
    dividend = metrics.dividend_yield_trailing
    if dividend is None and overview is not None:
        dividend = overview.dividend_yield
    if dividend is not None and dividend > cfg.dividend_yield_pct:
        apply(cfg.dividend_weight, f"dividend yield {dividend:.2f}%")

    expense = profile.expense_ratio if profile is not None else None
    if expense is not None:
        if expense > cfg.expense_high_pct:
            apply(-cfg.expense_weight, f"high expense ratio {expense:.2f}%")
        elif expense < cfg.expense_low_pct:
            apply(cfg.expense_weight, f"low-cost fund, expense ratio {expense:.2f}%")

    # ── Decision ──────────────────────────────────────────────────────────────
    score = sum(r.weight for r in positives) + sum(r.weight for r in negatives)
    decision = determine_decision(score, horizon, thresholds or _DEFAULT_THRESHOLDS)

    return ScoreResult(
        decision=decision,
        confidence=compute_confidence(score, decision, cfg),
        reasons=positives,
        counters=negatives,
        metrics=metrics,
        horizon=horizon,
    )


def determine_decision(
    score:      float,
    mode:       Horizon | str,
    thresholds: ThresholdsConfig,
) -> Decision:
    """Map an additive score to BUY / SELL / NEUTRAL for ``mode``."""
    bounds = thresholds.for_mode(Horizon(mode))
    if score >= bounds.buy:
        return Decision.BUY
    if score <= bounds.sell:
        return Decision.SELL
    return Decision.NEUTRAL


def compute_confidence(
    score:    float,
    decision: Decision,
    config:   Optional[DecisionConfig] = None,
) -> float:
    """Conviction from score magnitude; NEUTRAL reads lower than directional."""
    cfg = config or _DEFAULT_DECISION
    base = (
        cfg.neutral_confidence_base
        if decision == Decision.NEUTRAL
        else cfg.directional_confidence_base
    )
    return _clamp(abs(score) / cfg.confidence_divisor + base,
                  cfg.confidence_floor, cfg.confidence_ceiling)


# ── Helper ────────────────────────────────────────────────────────────────────

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
