"""
Alpha Vantage client — async market-data source for the recommendation pipeline.

API:   https://www.alphavantage.co/query?function=...&apikey=...
Docs:  https://www.alphavantage.co/documentation/

Credential setup (.env, gitignored):
  NISA_SIGNALS_API_KEY=your_key_here

Every request carries the caller's API key; ``default_api_key`` from
``MarketDataConfig`` is used when none is passed.

Functions used
--------------
  TIME_SERIES_DAILY_ADJUSTED    → list[DailyPoint]     (ascending)
  TIME_SERIES_MONTHLY_ADJUSTED  → list[MonthlyPoint]   (ascending)
  OVERVIEW                      → OverviewProfile | None
  ETF_PROFILE                   → EtfProfile | None
  LISTING_STATUS (CSV)          → list[str]
  SYMBOL_SEARCH                 → list[SymbolMatch]

Unit conventions
----------------
OVERVIEW reports ``DividendYield`` as a fraction (0.0052); it is converted to
percent here.  ETF_PROFILE's ``expenseRatio`` is kept
as reported, in percent.

Throttling
----------
HTTP 429 is retried up to ``max_retries`` times, sleeping ``Retry-After``
seconds when the header is present and ``2 ** attempt`` seconds otherwise.
Any other non-2xx status raises ``MarketDataError``.  Provider error payloads
delivered with HTTP 200 (``Error Message`` / ``Note`` / ``Information``)
also raise ``MarketDataError``.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from nisa_signals.config import MarketDataConfig
from nisa_signals.models.profile import EtfProfile, OverviewProfile, SymbolMatch
from nisa_signals.models.series import DailyPoint, MonthlyPoint

logger = logging.getLogger(__name__)

_PROVIDER_ERROR_KEYS = ("Error Message", "Note", "Information")


class MarketDataError(RuntimeError):
    """A market-data request failed (HTTP error, exhausted retries, bad payload)."""


class AlphaVantageClient:
    """Async Alpha Vantage client.

    Usage::

        async with AlphaVantageClient(config.market_data) as client:
            daily = await client.fetch_daily_adjusted("VOO", api_key="...")

    Args:
        config: Base URL, timeout, retry budget and default API key.
        http:   Optional pre-built ``httpx.AsyncClient`` (tests inject one
                with ``httpx.MockTransport``).  The client is closed on exit
                only when it was created here.
        sleep:  Awaitable sleep used between 429 retries.
    """

    def __init__(
        self,
        config: Optional[MarketDataConfig] = None,
        http:   Optional[httpx.AsyncClient] = None,
        sleep:  Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or MarketDataConfig()
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=self.config.timeout_s)
        self._sleep = sleep

    async def __aenter__(self) -> "AlphaVantageClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ── Public fetches ─────────────────────────────────────────────────────────

    async def fetch_daily_adjusted(
        self, symbol: str, api_key: Optional[str] = None
    ) -> list[DailyPoint]:
        """Full daily-adjusted history, ascending by date."""
        data = await self._request_json(
            "TIME_SERIES_DAILY_ADJUSTED",
            {"symbol": symbol, "outputsize": "full"},
            api_key,
        )
        return parse_daily(data)

    async def fetch_monthly_adjusted(
        self, symbol: str, api_key: Optional[str] = None
    ) -> list[MonthlyPoint]:
        """Monthly-adjusted history, ascending by date."""
        data = await self._request_json(
            "TIME_SERIES_MONTHLY_ADJUSTED", {"symbol": symbol}, api_key
        )
        return parse_monthly(data)

    async def fetch_overview(
        self, symbol: str, api_key: Optional[str] = None
    ) -> Optional[OverviewProfile]:
        """Company overview, or None when the provider has none (e.g. funds)."""
        data = await self._request_json("OVERVIEW", {"symbol": symbol}, api_key)
        return parse_overview(data)

    async def fetch_etf_profile(
        self, symbol: str, api_key: Optional[str] = None
    ) -> Optional[EtfProfile]:
        """Fund profile, or None when the symbol is not a fund."""
        data = await self._request_json("ETF_PROFILE", {"symbol": symbol}, api_key)
        return parse_etf_profile(data, symbol)

    async def fetch_listings(self, api_key: Optional[str] = None) -> list[str]:
        """Active listed symbols from the LISTING_STATUS CSV."""
        response = await self._request("LISTING_STATUS", {"state": "active"}, api_key)
        return parse_listings(response.text)

    async def search_symbols(
        self, keywords: str, api_key: Optional[str] = None
    ) -> list[SymbolMatch]:
        data = await self._request_json("SYMBOL_SEARCH", {"keywords": keywords}, api_key)
        return [
            SymbolMatch(
                symbol=match.get("1. symbol", ""),
                name=match.get("2. name", ""),
                region=match.get("4. region", ""),
            )
            for match in data.get("bestMatches", [])
        ]

    # ── Transport ──────────────────────────────────────────────────────────────

    async def _request_json(
        self, function: str, params: dict[str, str], api_key: Optional[str]
    ) -> dict:
        response = await self._request(function, params, api_key)
        try:
            data = response.json()
        except ValueError as exc:
            raise MarketDataError(f"{function}: response is not JSON.") from exc
        if not isinstance(data, dict):
            raise MarketDataError(f"{function}: unexpected payload type {type(data).__name__}.")
        for key in _PROVIDER_ERROR_KEYS:
            if key in data:
                raise MarketDataError(f"{function}: {data[key]}")
        return data

    async def _request(
        self, function: str, params: dict[str, str], api_key: Optional[str]
    ) -> httpx.Response:
        key = api_key or self.config.default_api_key
        if not key:
            raise MarketDataError(
                "An Alpha Vantage API key is required (apiKey or NISA_SIGNALS_API_KEY)."
            )
        query = {"function": function, "apikey": key, **params}

        attempt = 0
        while True:
            try:
                response = await self._http.get(self.config.base_url, params=query)
            except httpx.HTTPError as exc:
                raise MarketDataError(f"{function}: request failed: {exc}") from exc

            if response.status_code == 429 and attempt < self.config.max_retries:
                delay = _retry_delay(response, attempt)
                logger.warning(
                    "Alpha Vantage throttled %s (attempt %d/%d); retrying in %.1fs",
                    function, attempt + 1, self.config.max_retries, delay,
                )
                await self._sleep(delay)
                attempt += 1
                continue

            if not response.is_success:
                raise MarketDataError(
                    f"{function}: HTTP {response.status_code} {response.text[:200]}"
                )
            return response


# ── Parsers (pure; exercised directly in tests) ───────────────────────────────

def parse_daily(data: dict) -> list[DailyPoint]:
    series = data.get("Time Series (Daily)")
    if not series:
        return []
    points = [
        DailyPoint(
            date=dt.date.fromisoformat(day),
            open=_to_float(bar.get("1. open"), 0.0),
            high=_to_float(bar.get("2. high"), 0.0),
            low=_to_float(bar.get("3. low"), 0.0),
            close=_to_float(bar.get("4. close"), 0.0),
            adjusted_close=_to_float(bar.get("5. adjusted close"), 0.0),
            volume=_to_float(bar.get("6. volume"), 0.0),
            dividend=_to_float(bar.get("7. dividend amount"), 0.0),
            split_coefficient=_to_float(bar.get("8. split coefficient"), 1.0),
        )
        for day, bar in series.items()
    ]
    points.sort(key=lambda p: p.date)
    return points


def parse_monthly(data: dict) -> list[MonthlyPoint]:
    series = data.get("Monthly Adjusted Time Series")
    if not series:
        return []
    points = [
        MonthlyPoint(
            date=dt.date.fromisoformat(day),
            close=_to_float(bar.get("4. close"), 0.0),
            adjusted_close=_to_float(bar.get("5. adjusted close"), 0.0),
            dividend=_to_float(bar.get("7. dividend amount"), 0.0),
        )
        for day, bar in series.items()
    ]
    points.sort(key=lambda p: p.date)
    return points


def parse_overview(data: dict) -> Optional[OverviewProfile]:
    if not data or not data.get("Symbol"):
        return None
    dividend_yield = _to_float(data.get("DividendYield"))
    return OverviewProfile(
        symbol=data["Symbol"],
        name=data.get("Name") or "",
        description=data.get("Description"),
        sector=data.get("Sector"),
        industry=data.get("Industry"),
        dividend_per_share=_to_float(data.get("DividendPerShare")),
        dividend_yield=dividend_yield * 100.0 if dividend_yield is not None else None,
    )


def parse_etf_profile(data: dict, symbol: str) -> Optional[EtfProfile]:
    entries = data.get("data") if data else None
    if not isinstance(entries, list) or not entries:
        return None
    entry = entries[0]
    return EtfProfile(
        symbol=entry.get("ticker") or symbol,
        name=entry.get("name") or "",
        expense_ratio=_to_float(entry.get("expenseRatio")),
        asset_class=entry.get("assetClass"),
    )


def parse_listings(csv_text: str) -> list[str]:
    """First column of every non-header row."""
    lines = csv_text.strip().splitlines()
    return [line.split(",")[0].strip() for line in lines[1:] if line.strip()]


# ── Helpers ───────────────────────────────────────────────────────────────────

def _to_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Parse a provider numeric string; "None", "-" and blanks become ``default``."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _retry_delay(response: httpx.Response, attempt: int) -> float:
    retry_after = _to_float(response.headers.get("retry-after"))
    if retry_after:
        return retry_after
    return float(2 ** attempt)
