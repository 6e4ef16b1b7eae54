"""
Request bodies for the HTTP surface.

Shape violations (missing series, negative prices, unordered dates, unknown
mode) are rejected here by pydantic, which FastAPI turns into HTTP 422.  The
pure core never validates its inputs.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator

from nisa_signals.models.base import WireModel
from nisa_signals.models.profile import EtfProfile, OverviewProfile
from nisa_signals.models.series import DailyPoint, MonthlyPoint, validate_series_order
from nisa_signals.taxonomy.signal_taxonomy import Horizon


class ScoreRequest(WireModel):
    """Body of ``POST /score``.

    Attributes:
        dailies: Daily bars, strictly ascending by date.
        monthlies: Monthly bars, strictly ascending by date.
        profile: ETF profile (enables the expense-ratio rule).
        overview: Equity overview (dividend-yield fallback).
        mode: ``"long"`` or ``"swing"``.
        timeframe_months: Keep only the trailing N months of daily bars.
        price_scale: Multiply every price field before scoring.
        symbol: Ticker being viewed; when present a view is recorded for it.
    """

    dailies: list[DailyPoint]
    monthlies: list[MonthlyPoint]
    profile: Optional[EtfProfile] = None
    overview: Optional[OverviewProfile] = None
    mode: Horizon = Horizon.LONG
    timeframe_months: Optional[int] = Field(default=None, gt=0)
    price_scale: Optional[float] = Field(default=None, gt=0)
    symbol: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def validate_order(self) -> "ScoreRequest":
        validate_series_order(self.dailies, "dailies")
        validate_series_order(self.monthlies, "monthlies")
        return self
