"""
Ranking input and output models.

``CandidateSnapshot`` is the per-symbol bundle the orchestrator assembles
after scoring; ``RankedItem`` is a snapshot with its position in one
recommendation list.  Ratios on the snapshot are fractions
(``expense_ratio=0.0003`` == 0.03%) so they compare directly against the
ranking criteria.
"""

from __future__ import annotations

from typing import Optional

from nisa_signals.models.base import WireModel
from nisa_signals.models.signal import IndicatorSet
from nisa_signals.taxonomy.signal_taxonomy import Decision, InstrumentType


class CandidateSnapshot(WireModel):
    """Per-symbol ranking input.

    Attributes:
        symbol: Ticker.
        name: Display name (falls back to the ticker).
        instrument_type: EQUITY / ETF / FUND / UNKNOWN.
        decision: Decision engine verdict.
        confidence: Displayed confidence (base or pool-adjusted).
        indicators: Metrics the decision was computed from.
        average_volume: Mean daily volume over the lookback window.
        monthly_trend1, monthly_trend3, monthly_trend12: Percent change of
            monthly adjusted close over 1 / 3 / 12 months.
        latest_close: Latest daily adjusted close.
        expense_ratio: Fund expense ratio as a fraction.
        distribution_yield: Trailing distribution yield as a fraction.
        app_views: In-app view count.
        buy_score: 0–100 buy strength; set only for BUY decisions.
        popularity_score: CandidateScorer popularity composite.
        etf_score: CandidateScorer ETF-quality composite (ETFs only).
    """

    symbol: str
    name: str = ""
    instrument_type: InstrumentType = InstrumentType.UNKNOWN
    decision: Decision = Decision.NEUTRAL
    confidence: float = 0.0
    indicators: IndicatorSet = IndicatorSet()
    average_volume: float = 0.0
    monthly_trend1: Optional[float] = None
    monthly_trend3: Optional[float] = None
    monthly_trend12: Optional[float] = None
    latest_close: Optional[float] = None
    expense_ratio: Optional[float] = None
    distribution_yield: Optional[float] = None
    app_views: Optional[int] = None
    buy_score: Optional[float] = None
    popularity_score: Optional[float] = None
    etf_score: Optional[float] = None


class RankedItem(CandidateSnapshot):
    """A snapshot placed in a recommendation list.

    Attributes:
        rank: 1-based position in the list.
        score: Raw weighted ranking score.
        components: Named inputs behind ``score``.
    """

    rank: int
    score: float
    components: dict[str, float] = {}


class RecommendationLists(WireModel):
    """The three recommendation lists returned for one request.

    ``errors`` maps symbols dropped from the pool to the failure message.
    """

    popular: list[RankedItem] = []
    etfs: list[RankedItem] = []
    buy_candidates: list[RankedItem] = []
    pool_size: int = 0
    errors: dict[str, str] = {}
