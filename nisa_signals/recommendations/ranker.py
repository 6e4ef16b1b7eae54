"""
Recommendation ranker: filter → score → sort → rank over CandidateSnapshots.

Usage flow
----------
1. Filter the pool by category eligibility (criteria thresholds).
2. score_and_sort(eligible, score_fn)
   -> list[RankedItem]  (score desc, ties by symbol asc, ranks 1..n)

Three instantiations share the pipeline:

rank_popular_symbols
    eligible:  average_volume >= minimum_average_volume
               and app_views >= minimum_app_views
    score:     w_views · views/max_views + w_volume · volume/max_volume

rank_etf_recommendations
    eligible:  expense_ratio <= max_expense_ratio
               and distribution_yield >= min_distribution_yield
    score:     w_yield · yield/max_yield
             + w_expense · (1 − expense/max_expense_ratio)
             + w_volume · volume/max_volume

rank_buy_candidates
    eligible:  buy_score >= min_buy_score
    score:     w_buy · (buy_score − min)/(100 − min)
             + w_volume · sqrt(volume/max_volume)
    The square root compresses liquidity relative to the fundamental score.

Pool maxima are taken over the eligible set; a maximum of 0 normalises to 0.
All functions are pure and deterministic: identical input yields identical
order and scores.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from nisa_signals.config import BuyCriteria, EtfCriteria, PopularCriteria
from nisa_signals.models.candidate import CandidateSnapshot, RankedItem


@dataclass
class RankingScore:
    """Score for one snapshot plus the named inputs behind it."""

    score:      float
    components: dict[str, float] = field(default_factory=dict)


ScoreFn = Callable[[CandidateSnapshot], RankingScore]


def score_and_sort(
    snapshots: Iterable[CandidateSnapshot],
    score_fn:  ScoreFn,
) -> list[RankedItem]:
    """Score every snapshot, sort by score descending (symbol ascending on ties), rank."""
    scored = [(snap, score_fn(snap)) for snap in snapshots]
    scored.sort(key=lambda pair: (-pair[1].score, pair[0].symbol))
    return apply_rank(scored)


def apply_rank(
    ordered: Sequence[tuple[CandidateSnapshot, RankingScore]],
) -> list[RankedItem]:
    """Attach 1-based consecutive ranks, the score and its components."""
    return [
        RankedItem(
            **snap.model_dump(),
            rank=rank,
            score=result.score,
            components=dict(result.components),
        )
        for rank, (snap, result) in enumerate(ordered, start=1)
    ]


def rank_popular_symbols(
    snapshots: Iterable[CandidateSnapshot],
    criteria:  PopularCriteria,
) -> list[RankedItem]:
    """Most-viewed, most-traded symbols."""
    eligible = [
        s for s in snapshots
        if s.average_volume >= criteria.minimum_average_volume
        and (s.app_views or 0) >= criteria.minimum_app_views
    ]
    max_views = _pool_max(s.app_views or 0 for s in eligible)
    max_volume = _pool_max(s.average_volume for s in eligible)
    weights = criteria.weights

    def score(s: CandidateSnapshot) -> RankingScore:
        views = s.app_views or 0
        return RankingScore(
            score=(
                _normalise(views, max_views) * weights.app_views
                + _normalise(s.average_volume, max_volume) * weights.average_volume
            ),
            components={"appViews": views, "averageVolume": s.average_volume},
        )

    return score_and_sort(eligible, score)


def rank_etf_recommendations(
    snapshots: Iterable[CandidateSnapshot],
    criteria:  EtfCriteria,
) -> list[RankedItem]:
    """Low-cost, income-paying, liquid funds.

    A snapshot without an expense ratio is ineligible; a missing
    distribution yield counts as 0.
    """
    eligible = [
        s for s in snapshots
        if s.expense_ratio is not None
        and s.expense_ratio <= criteria.max_expense_ratio
        and (s.distribution_yield or 0.0) >= criteria.min_distribution_yield
    ]
    max_yield = _pool_max(s.distribution_yield or 0.0 for s in eligible)
    max_volume = _pool_max(s.average_volume for s in eligible)
    weights = criteria.weights

    def score(s: CandidateSnapshot) -> RankingScore:
        expense = s.expense_ratio if s.expense_ratio is not None else criteria.max_expense_ratio
        dist_yield = s.distribution_yield or 0.0
        expense_score = 1.0 - min(expense / criteria.max_expense_ratio, 1.0)
        return RankingScore(
            score=(
                _normalise(dist_yield, max_yield) * weights.distribution_yield
                + expense_score * weights.expense_ratio
                + _normalise(s.average_volume, max_volume) * weights.average_volume
            ),
            components={
                "distributionYield": dist_yield,
                "expenseRatio":      expense,
                "averageVolume":     s.average_volume,
            },
        )

    return score_and_sort(eligible, score)


def rank_buy_candidates(
    snapshots: Iterable[CandidateSnapshot],
    criteria:  BuyCriteria,
) -> list[RankedItem]:
    """Strongest BUY signals, lightly weighted by liquidity."""
    eligible = [
        s for s in snapshots
        if (s.buy_score or 0.0) >= criteria.min_buy_score
    ]
    max_volume = _pool_max(s.average_volume for s in eligible)
    score_range = max(1.0, 100.0 - criteria.min_buy_score)
    weights = criteria.weights

    def score(s: CandidateSnapshot) -> RankingScore:
        buy = s.buy_score or 0.0
        return RankingScore(
            score=(
                max(0.0, buy - criteria.min_buy_score) / score_range * weights.buy_score
                + math.sqrt(_normalise(s.average_volume, max_volume)) * weights.average_volume
            ),
            components={"buyScore": buy, "averageVolume": s.average_volume},
        )

    return score_and_sort(eligible, score)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _pool_max(values: Iterable[float]) -> float:
    return max(0.0, max(values, default=0.0))


def _normalise(value: float, max_value: float) -> float:
    if not max_value:
        return 0.0
    return value / max_value
