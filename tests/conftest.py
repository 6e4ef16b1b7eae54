"""
Shared pytest fixtures for the NISA Signals test suite.

Provides:
  - Synthetic series builders (``make_daily`` / ``make_monthly``) exposed as
    fixtures so test modules never duplicate date arithmetic.
  - ``uptrend_daily`` / ``uptrend_monthly`` / ``downtrend_daily``: long,
    anomaly-free series whose decisions are known (BUY / SELL).
  - ``make_snapshot``: CandidateSnapshot factory with sensible defaults.
  - ``app_config``: default ``AppConfig`` (no TOML, no env).
  - ``make_source``: in-memory market-data source with call counters and
    in-flight tracking (see ``FakeSource``).
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

import pytest

from nisa_signals.config import AppConfig
from nisa_signals.models.candidate import CandidateSnapshot
from nisa_signals.models.profile import EtfProfile, OverviewProfile
from nisa_signals.models.series import DailyPoint, MonthlyPoint

DAILY_START = date(2023, 1, 2)


# ── Series builders ───────────────────────────────────────────────────────────

def build_daily(
    closes: Sequence[float],
    volumes: Optional[Sequence[float]] = None,
    spread: float = 0.01,
    splits: Optional[dict[int, float]] = None,
    dividends: Optional[dict[int, float]] = None,
    start: date = DAILY_START,
) -> list[DailyPoint]:
    """One bar per calendar day; high/low are ``close ± spread``."""
    points = []
    for i, close in enumerate(closes):
        points.append(
            DailyPoint(
                date=start + timedelta(days=i),
                open=close,
                high=close * (1 + spread),
                low=close * (1 - spread),
                close=close,
                adjusted_close=close,
                volume=volumes[i] if volumes is not None else 1_000_000,
                dividend=(dividends or {}).get(i, 0.0),
                split_coefficient=(splits or {}).get(i, 1.0),
            )
        )
    return points


def build_monthly(
    closes: Sequence[float],
    dividends: Optional[Sequence[float]] = None,
    start_year: int = 2020,
) -> list[MonthlyPoint]:
    """One bar per month end (day 28), ascending."""
    return [
        MonthlyPoint(
            date=date(start_year + i // 12, i % 12 + 1, 28),
            close=close,
            adjusted_close=close,
            dividend=dividends[i] if dividends is not None else 0.0,
        )
        for i, close in enumerate(closes)
    ]


@pytest.fixture
def make_daily() -> Callable[..., list[DailyPoint]]:
    return build_daily


@pytest.fixture
def make_monthly() -> Callable[..., list[MonthlyPoint]]:
    return build_monthly


@pytest.fixture
def uptrend_daily() -> list[DailyPoint]:
    """260 bars rising 0.1 per day from 100.0 (no gaps, constant volume)."""
    return build_daily([100.0 + 0.1 * i for i in range(260)])


@pytest.fixture
def downtrend_daily() -> list[DailyPoint]:
    """260 bars falling 0.1 per day from 200.0."""
    return build_daily([200.0 - 0.1 * i for i in range(260)])


@pytest.fixture
def uptrend_monthly() -> list[MonthlyPoint]:
    """24 monthly bars rising 2.0 per month from 80.0, no dividends."""
    return build_monthly([80.0 + 2.0 * i for i in range(24)])


# ── Snapshots ─────────────────────────────────────────────────────────────────

@pytest.fixture
def make_snapshot() -> Callable[..., CandidateSnapshot]:
    def _make(symbol: str = "TEST", **overrides) -> CandidateSnapshot:
        return CandidateSnapshot(symbol=symbol, **overrides)
    return _make


# ── Config ────────────────────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    """Default ``AppConfig`` built from model defaults only."""
    return AppConfig()


# ── Market-data source ────────────────────────────────────────────────────────

class FakeSource:
    """Canned series per symbol, optional per-symbol failures, call counters."""

    def __init__(self, daily, monthly, universe=(), failing=(), etfs=(), listing_error=None,
                 series=None):
        self.daily = daily
        self.monthly = monthly
        self.universe = list(universe)
        self.failing = set(failing)
        self.etfs = set(etfs)
        self.listing_error = listing_error
        self.series = series or {}
        self.calls: Counter = Counter()
        self.in_flight = 0
        self.max_in_flight = 0

    async def _track(self, kind, symbol):
        self.calls[(kind, symbol)] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        if symbol in self.failing and kind == "daily":
            raise RuntimeError(f"provider error for {symbol}")

    async def fetch_daily_adjusted(self, symbol, api_key=None):
        await self._track("daily", symbol)
        return self.series.get(symbol, self.daily)

    async def fetch_monthly_adjusted(self, symbol, api_key=None):
        await self._track("monthly", symbol)
        return self.monthly

    async def fetch_overview(self, symbol, api_key=None):
        await self._track("overview", symbol)
        if symbol in self.etfs:
            return None
        return OverviewProfile(symbol=symbol, name=f"{symbol} Corp")

    async def fetch_etf_profile(self, symbol, api_key=None):
        await self._track("etf", symbol)
        if symbol not in self.etfs:
            return None
        return EtfProfile(symbol=symbol, name=f"{symbol} Fund", expense_ratio=0.05)

    async def fetch_listings(self, api_key=None):
        if self.listing_error:
            raise self.listing_error
        return list(self.universe)


@pytest.fixture
def make_source(uptrend_daily, make_monthly):
    monthly = make_monthly([100.0 + i for i in range(24)], dividends=[0.3] * 24)

    def _make(**kwargs) -> FakeSource:
        return FakeSource(uptrend_daily, monthly, **kwargs)
    return _make
