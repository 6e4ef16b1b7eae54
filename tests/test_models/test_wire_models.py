"""Tests for nisa_signals/models (wire aliases, validators, frozen behaviour)."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from nisa_signals.models.base import to_camel
from nisa_signals.models.candidate import CandidateSnapshot, RecommendationLists
from nisa_signals.models.series import DailyPoint, MonthlyPoint, validate_series_order
from nisa_signals.models.signal import IndicatorSet, ScoreReason, ScoreResult
from nisa_signals.taxonomy.signal_taxonomy import Decision, Horizon, InstrumentType


class TestToCamel:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("adjusted_close", "adjustedClose"),
            ("dist_from_52w_high", "distFrom52wHigh"),
            ("rsi14", "rsi14"),
            ("buy_candidates", "buyCandidates"),
        ],
    )
    def test_conversion(self, name, expected):
        assert to_camel(name) == expected


class TestDailyPoint:
    def test_accepts_camel_and_snake(self):
        camel = DailyPoint.model_validate({
            "date": "2024-03-04", "open": 1, "high": 2, "low": 1, "close": 2,
            "adjustedClose": 2, "splitCoefficient": 2,
        })
        snake = DailyPoint(date=date(2024, 3, 4), open=1, high=2, low=1, close=2,
                           adjusted_close=2, split_coefficient=2)
        assert camel == snake

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            DailyPoint(date=date(2024, 3, 4), open=1, high=2, low=-1, close=2, adjusted_close=2)

    def test_frozen(self):
        point = MonthlyPoint(date=date(2024, 1, 31), close=1, adjusted_close=1)
        with pytest.raises(ValidationError):
            point.close = 2  # type: ignore[misc]


class TestSeriesOrder:
    def test_ascending_passes(self, make_daily):
        validate_series_order(make_daily([1.0, 2.0, 3.0]))

    def test_duplicate_date_rejected(self, make_daily):
        daily = make_daily([1.0, 2.0])
        with pytest.raises(ValueError, match="strictly ascending"):
            validate_series_order([daily[0], daily[0]], "dailies")


class TestScoreResult:
    def test_score_property_sums_weights(self):
        result = ScoreResult(
            decision=Decision.NEUTRAL,
            confidence=0.3,
            reasons=[ScoreReason(label="a", weight=2), ScoreReason(label="b", weight=1)],
            counters=[ScoreReason(label="c", weight=-2)],
        )
        assert result.score == 1

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ScoreResult(decision=Decision.BUY, confidence=1.2)

    def test_serialises_with_aliases(self):
        result = ScoreResult(
            decision=Decision.BUY,
            confidence=0.8,
            metrics=IndicatorSet(dist_from_52w_high=3.0),
            horizon=Horizon.SWING,
        )
        data = result.model_dump(mode="json", by_alias=True)
        assert data["metrics"]["distFrom52wHigh"] == 3.0
        assert data["metrics"]["macdSignal"] is None
        assert data["decision"] == "BUY"
        assert data["horizon"] == "swing"


class TestCandidateModels:
    def test_snapshot_defaults(self):
        snap = CandidateSnapshot(symbol="VOO")
        assert snap.instrument_type == InstrumentType.UNKNOWN
        assert snap.decision == Decision.NEUTRAL
        assert snap.indicators == IndicatorSet()

    def test_lists_alias(self):
        data = RecommendationLists().model_dump(by_alias=True)
        assert set(data) == {"popular", "etfs", "buyCandidates", "poolSize", "errors"}
