"""
Price series models — the typed input of every indicator.

``DailyPoint`` mirrors one row of a daily-adjusted feed; ``MonthlyPoint`` one
row of a monthly-adjusted feed.  Both are frozen.  Series are plain lists
ordered ascending by date; ``validate_series_order()`` enforces that at the
boundary so the pure indicator code never has to.
"""

from __future__ import annotations

import datetime as dt
from typing import Sequence, Union

from pydantic import field_validator

from nisa_signals.models.base import WireModel


class DailyPoint(WireModel):
    """One trading day.

    Attributes:
        date: Trading date.
        open, high, low, close: Raw session prices.
        adjusted_close: Close adjusted for splits and dividends; all
            close-based indicators use this field.
        volume: Shares traded.
        dividend: Cash dividend paid on this date (0 when none).
        split_coefficient: Split ratio effective on this date; 1 on
            non-split days.
    """

    date: dt.date
    open: float
    high: float
    low: float
    close: float
    adjusted_close: float
    volume: float = 0.0
    dividend: float = 0.0
    split_coefficient: float = 1.0

    @field_validator("open", "high", "low", "close", "adjusted_close", "volume", "dividend")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Price and volume fields must be non-negative, got {v}.")
        return v


class MonthlyPoint(WireModel):
    """One month-end bar of a monthly-adjusted series."""

    date: dt.date
    close: float
    adjusted_close: float
    dividend: float = 0.0

    @field_validator("close", "adjusted_close", "dividend")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Monthly fields must be non-negative, got {v}.")
        return v


def validate_series_order(
    points: Sequence[Union[DailyPoint, MonthlyPoint]],
    label: str = "series",
) -> None:
    """Raise ``ValueError`` unless ``points`` are strictly ascending by date."""
    for prev, cur in zip(points, points[1:]):
        if cur.date <= prev.date:
            raise ValueError(
                f"{label} must be strictly ascending by date; "
                f"{cur.date.isoformat()} follows {prev.date.isoformat()}."
            )
