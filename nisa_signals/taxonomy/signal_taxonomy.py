"""
Signal taxonomy: the closed vocabularies shared by scoring and ranking.

  - ``Decision``       — outcome of the decision engine for one symbol.
  - ``Horizon``        — trading timeframe; selects thresholds and RSI bands.
  - ``InstrumentType`` — what kind of security a symbol is.

This module has NO imports from any other ``nisa_signals`` package.
"""

from enum import StrEnum


class Decision(StrEnum):
    """Engine verdict for a symbol."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"

    ABSTAIN = "ABSTAIN"
    """Insufficient data or a price anomaly; no automated judgement is made."""


class Horizon(StrEnum):
    """Trading timeframe."""

    LONG = "long"
    SWING = "swing"


class InstrumentType(StrEnum):
    EQUITY = "EQUITY"
    ETF = "ETF"
    FUND = "FUND"
    UNKNOWN = "UNKNOWN"
