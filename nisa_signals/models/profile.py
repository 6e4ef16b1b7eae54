"""
Optional fundamentals attached to a symbol.

Percent conventions: ``OverviewProfile.dividend_yield`` and
``EtfProfile.expense_ratio`` are expressed in percent (3.1 == 3.1%), the
units the decision rules compare against.
"""

from __future__ import annotations

from typing import Optional

from nisa_signals.models.base import WireModel


class OverviewProfile(WireModel):
    """Company overview facts for an equity."""

    symbol: str
    name: str = ""
    description: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    dividend_per_share: Optional[float] = None
    dividend_yield: Optional[float] = None


class EtfProfile(WireModel):
    """Fund facts for an ETF."""

    symbol: str
    name: str = ""
    expense_ratio: Optional[float] = None
    asset_class: Optional[str] = None


class SymbolMatch(WireModel):
    """One symbol-search hit."""

    symbol: str
    name: str = ""
    region: str = ""
