"""
Decision engine output models.

``IndicatorSet`` carries every technical metric as ``Optional[float]``:
``None`` means the series was too short to compute it, and consumers treat
``None`` as "contributes nothing".

``ScoreResult`` is explainable by construction: summing the weights of
``reasons`` and ``counters`` reproduces the additive score that selected
``decision``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator

from nisa_signals.models.base import WireModel
from nisa_signals.taxonomy.signal_taxonomy import Decision, Horizon


class IndicatorSet(WireModel):
    """Technical metrics for one symbol at the latest bar.

    Attributes:
        sma20, sma50, sma200: Simple moving averages of adjusted close.
        ema20: Exponential moving average (period 20) of adjusted close.
        rsi14: 14-period relative strength index, 0–100.
        macd, macd_signal: MACD line (12/26) and its 9-period signal.
        atr14: 14-day average true range, in price units.
        volume_ratio5, volume_ratio20: Latest volume / trailing mean volume.
        max_drawdown: Largest peak-to-current decline over the series, percent.
        dist_from_52w_high: Gap below the trailing 252-bar high, percent.
        dividend_yield_trailing: Trailing 12-month dividends / latest close, percent.
    """

    sma20: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None
    ema20: Optional[float] = None
    rsi14: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    atr14: Optional[float] = None
    volume_ratio5: Optional[float] = None
    volume_ratio20: Optional[float] = None
    max_drawdown: Optional[float] = None
    dist_from_52w_high: Optional[float] = None
    dividend_yield_trailing: Optional[float] = None


class ScoreReason(WireModel):
    """One applied rule: a readable label and its literal point contribution."""

    label: str
    weight: float


class ScoreResult(WireModel):
    """Decision, confidence and itemised reasoning for one symbol."""

    decision: Decision
    confidence: float
    reasons: list[ScoreReason] = []
    counters: list[ScoreReason] = []
    metrics: IndicatorSet = IndicatorSet()
    horizon: Horizon = Horizon.LONG

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {v}.")
        return v

    @property
    def score(self) -> float:
        """Additive score reconstructed from the emitted weights."""
        return sum(r.weight for r in self.reasons) + sum(c.weight for c in self.counters)
