"""Tests for nisa_signals/indicators/anomalies.py."""

from __future__ import annotations

from nisa_signals.indicators.anomalies import detect_anomalies


class TestDetectAnomalies:
    def test_clean_series_has_no_anomalies(self, uptrend_daily):
        assert detect_anomalies(uptrend_daily) == []

    def test_upward_gap_over_20pct(self, make_daily):
        alerts = detect_anomalies(make_daily([100.0, 100.0, 125.0]))
        assert alerts == ["price gap 2023-01-04: 25.0%"]

    def test_downward_gap_over_20pct(self, make_daily):
        alerts = detect_anomalies(make_daily([100.0, 79.0]))
        assert len(alerts) == 1
        assert alerts[0].startswith("price gap 2023-01-03")

    def test_move_of_exactly_20pct_is_not_a_gap(self, make_daily):
        assert detect_anomalies(make_daily([100.0, 120.0])) == []

    def test_split_event(self, make_daily):
        alerts = detect_anomalies(make_daily([50.0, 50.0, 50.0], splits={1: 2.0}))
        assert alerts == ["split event 2023-01-03: 2"]

    def test_gap_and_split_on_same_bar(self, make_daily):
        alerts = detect_anomalies(make_daily([100.0, 50.0], splits={1: 2.0}))
        assert alerts == ["price gap 2023-01-03: 50.0%", "split event 2023-01-03: 2"]

    def test_empty_and_single_bar(self, make_daily):
        assert detect_anomalies([]) == []
        assert detect_anomalies(make_daily([100.0])) == []
