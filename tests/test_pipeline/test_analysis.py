"""Tests for nisa_signals/pipeline/analysis.py."""

from __future__ import annotations

import pytest

from nisa_signals.models.profile import EtfProfile, OverviewProfile
from nisa_signals.pipeline.analysis import analyse_series, build_snapshot, prepare_series
from nisa_signals.taxonomy.signal_taxonomy import Decision, InstrumentType


class TestPrepareSeries:
    def test_no_options_is_identity(self, uptrend_daily, uptrend_monthly):
        daily, monthly = prepare_series(uptrend_daily, uptrend_monthly)
        assert daily == uptrend_daily
        assert monthly == uptrend_monthly

    def test_timeframe_trims_daily_only(self, uptrend_daily, uptrend_monthly):
        daily, monthly = prepare_series(
            uptrend_daily, uptrend_monthly, timeframe_months=3, trading_days_per_month=21
        )
        assert len(daily) == 63
        assert daily[-1] == uptrend_daily[-1]
        assert monthly == uptrend_monthly

    def test_price_scale_leaves_volume(self, make_daily, make_monthly):
        daily, monthly = prepare_series(
            make_daily([10.0], volumes=[500.0], dividends={0: 0.2}),
            make_monthly([20.0], dividends=[0.1]),
            price_scale=100.0,
        )
        bar = daily[0]
        assert bar.adjusted_close == pytest.approx(1000.0)
        assert bar.high == pytest.approx(1010.0)
        assert bar.dividend == pytest.approx(20.0)
        assert bar.volume == 500.0
        assert bar.split_coefficient == 1.0
        assert monthly[0].adjusted_close == pytest.approx(2000.0)
        assert monthly[0].dividend == pytest.approx(10.0)

    def test_invalid_options_rejected(self, uptrend_daily, uptrend_monthly):
        with pytest.raises(ValueError):
            prepare_series(uptrend_daily, uptrend_monthly, timeframe_months=0)
        with pytest.raises(ValueError):
            prepare_series(uptrend_daily, uptrend_monthly, price_scale=-1.0)


class TestAnalyseSeries:
    def test_uptrend_buy(self, uptrend_daily, uptrend_monthly, app_config):
        result = analyse_series(uptrend_daily, uptrend_monthly, config=app_config)
        assert result.decision == Decision.BUY

    def test_gap_abstains(self, make_daily, uptrend_monthly):
        daily = make_daily([100.0] * 30 + [130.0])
        result = analyse_series(daily, uptrend_monthly)
        assert result.decision == Decision.ABSTAIN
        assert result.counters[0].label.startswith("price gap")

    def test_scale_invariant_decision(self, uptrend_daily, uptrend_monthly):
        base = analyse_series(uptrend_daily, uptrend_monthly)
        daily, monthly = prepare_series(uptrend_daily, uptrend_monthly, price_scale=150.0)
        scaled = analyse_series(daily, monthly)
        assert scaled.decision == base.decision
        assert scaled.score == base.score


class TestBuildSnapshot:
    def test_etf_snapshot(self, uptrend_daily, make_monthly):
        monthly = make_monthly([100.0] * 12, dividends=[0.25] * 12)
        result = analyse_series(uptrend_daily, monthly)
        profile = EtfProfile(symbol="VOO", name="Vanguard S&P 500", expense_ratio=0.03)
        snap = build_snapshot("VOO", uptrend_daily, monthly, result, profile=profile)
        assert snap.instrument_type == InstrumentType.ETF
        assert snap.name == "Vanguard S&P 500"
        assert snap.expense_ratio == pytest.approx(0.0003)
        assert snap.distribution_yield == pytest.approx(0.03)
        assert snap.average_volume == pytest.approx(1_000_000)
        assert snap.latest_close == pytest.approx(125.9)
        assert snap.monthly_trend1 == pytest.approx(0.0)
        assert snap.decision == result.decision

    def test_equity_uses_overview(self, uptrend_daily, make_monthly):
        monthly = make_monthly([100.0, 110.0])
        result = analyse_series(uptrend_daily, monthly)
        overview = OverviewProfile(symbol="AAPL", name="Apple Inc.", dividend_yield=0.5)
        snap = build_snapshot("AAPL", uptrend_daily, monthly, result, overview=overview)
        assert snap.instrument_type == InstrumentType.EQUITY
        assert snap.name == "Apple Inc."
        assert snap.expense_ratio is None
        assert snap.distribution_yield == pytest.approx(0.005)
        assert snap.monthly_trend1 == pytest.approx(10.0)
        assert snap.monthly_trend3 is None

    def test_unknown_without_profiles(self):
        from nisa_signals.models.signal import ScoreResult

        result = ScoreResult(decision=Decision.ABSTAIN, confidence=0.1)
        snap = build_snapshot("ZZZ", [], [], result)
        assert snap.instrument_type == InstrumentType.UNKNOWN
        assert snap.name == "ZZZ"
        assert snap.latest_close is None
        assert snap.average_volume == 0.0
