"""
Recommendation orchestration: symbol pool → per-symbol analysis → candidate
scoring → three ranked lists.

The ``RecommendationOrchestrator`` coordinates one request in a fixed,
testable sequence:

  Step 1 — Pool:       requested symbols, then the most-viewed symbols, then
                       the listed universe; upper-cased, de-duplicated and
                       truncated at ``recommend.pool_cap``.
  Step 2 — Analyse:    per symbol, TTL-cache lookup on (api_key, mode, symbol);
                       on a miss the daily, monthly, overview and ETF-profile
                       fetches run concurrently, followed by
                       ``analyse_series()`` and ``build_snapshot()``.
  Step 3 — Score:      popularity / ETF composites, pool-relative confidence
                       and buy score for every surviving snapshot.
  Step 4 — Rank:       popular, ETF and buy-candidate rankings, each truncated
                       to ``limit``.  Only ETF snapshots enter the ETF ranking.

Failure isolation
-----------------
- Universe listing failure:   Fatal; raises ``UniverseFetchError``.
- Daily/monthly fetch failure: The symbol is dropped and recorded in
                               ``RecommendationLists.errors``.
- Overview / ETF profile failure: Logged; the symbol is analysed without it.

Concurrency
-----------
Symbols fan out under an ``asyncio.Semaphore`` of ``recommend.concurrency``;
each task returns a ``SymbolOutcome`` and never raises, so one symbol's
failure cannot cancel another.  Total provider calls are bounded by
``4 × pool_cap`` plus the single listing call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from nisa_signals.config import AppConfig
from nisa_signals.ingestion.app_views import AppViewsRepository
from nisa_signals.models.candidate import CandidateSnapshot, RecommendationLists
from nisa_signals.models.profile import EtfProfile, OverviewProfile
from nisa_signals.models.series import DailyPoint, MonthlyPoint
from nisa_signals.pipeline.analysis import analyse_series, build_snapshot
from nisa_signals.pipeline.cache import TTLCache
from nisa_signals.recommendations.candidates import (
    adjust_confidence,
    etf_score,
    popularity_score,
)
from nisa_signals.recommendations.ranker import (
    rank_buy_candidates,
    rank_etf_recommendations,
    rank_popular_symbols,
)
from nisa_signals.taxonomy.signal_taxonomy import Decision, Horizon, InstrumentType

logger = logging.getLogger(__name__)


class UniverseFetchError(RuntimeError):
    """The listed-symbol universe could not be fetched; the request fails."""


class MarketDataSource(Protocol):
    """What the orchestrator needs from a market-data provider."""

    async def fetch_daily_adjusted(
        self, symbol: str, api_key: Optional[str] = None
    ) -> list[DailyPoint]: ...

    async def fetch_monthly_adjusted(
        self, symbol: str, api_key: Optional[str] = None
    ) -> list[MonthlyPoint]: ...

    async def fetch_overview(
        self, symbol: str, api_key: Optional[str] = None
    ) -> Optional[OverviewProfile]: ...

    async def fetch_etf_profile(
        self, symbol: str, api_key: Optional[str] = None
    ) -> Optional[EtfProfile]: ...

    async def fetch_listings(self, api_key: Optional[str] = None) -> list[str]: ...


# ── Result types ──────────────────────────────────────────────────────────────

@dataclass
class SymbolOutcome:
    """Result of analysing one pool symbol.

    Attributes:
        symbol:    Pool symbol.
        snapshot:  Analysed snapshot (None on failure).
        error:     Failure message if ``snapshot`` is None.
        cache_hit: True if the snapshot came from the TTL cache.
    """

    symbol:    str
    snapshot:  Optional[CandidateSnapshot] = None
    error:     Optional[str] = None
    cache_hit: bool = False

    @property
    def success(self) -> bool:
        return self.snapshot is not None


class RecommendationOrchestrator:
    """Builds the three recommendation lists for one request.

    Args:
        config:    Application configuration.
        source:    Market-data provider (``AlphaVantageClient`` in production).
        app_views: View-count repository.
        cache:     Per-symbol snapshot cache; a fresh ``TTLCache`` with
                   ``recommend.cache_ttl_minutes`` is created when omitted.
    """

    def __init__(
        self,
        config:    AppConfig,
        source:    MarketDataSource,
        app_views: Optional[AppViewsRepository] = None,
        cache:     Optional[TTLCache[CandidateSnapshot]] = None,
    ) -> None:
        self.config = config
        self.source = source
        self.app_views = app_views if app_views is not None else AppViewsRepository()
        self.cache: TTLCache[CandidateSnapshot] = (
            cache if cache is not None
            else TTLCache(config.recommend.cache_ttl_minutes * 60.0)
        )

    async def build(
        self,
        api_key: Optional[str] = None,
        symbols: Sequence[str] = (),
        limit:   Optional[int] = None,
        mode:    Horizon | str = Horizon.LONG,
    ) -> RecommendationLists:
        """Run the full pool → analyse → score → rank sequence.

        Raises:
            UniverseFetchError: If the listing fetch fails.
        """
        horizon = Horizon(mode)
        top_n = limit if limit is not None else self.config.recommend.default_limit

        pool = await self.build_pool(api_key, symbols)
        logger.info("Recommendation pool: %d symbols (mode=%s)", len(pool), horizon)

        semaphore = asyncio.Semaphore(self.config.recommend.concurrency)
        outcomes = await asyncio.gather(
            *(self._analyse_symbol(semaphore, symbol, api_key, horizon) for symbol in pool)
        )

        errors = {o.symbol: o.error or "unknown error" for o in outcomes if not o.success}
        hits = sum(1 for o in outcomes if o.cache_hit)
        snapshots = [
            o.snapshot.model_copy(update={"app_views": self.app_views.views(o.symbol)})
            for o in outcomes
            if o.snapshot is not None
        ]
        logger.info(
            "Analysed %d/%d symbols (%d cache hits, %d failed)",
            len(snapshots), len(pool), hits, len(errors),
        )

        scored = score_candidates(snapshots, self.config)
        ranking = self.config.ranking
        etf_pool = [s for s in scored if s.instrument_type == InstrumentType.ETF]

        result = RecommendationLists(
            popular=rank_popular_symbols(scored, ranking.popular)[:top_n],
            etfs=rank_etf_recommendations(etf_pool, ranking.etf)[:top_n],
            buy_candidates=rank_buy_candidates(scored, ranking.buy)[:top_n],
            pool_size=len(pool),
            errors=errors,
        )
        logger.info(
            "Ranked: popular=%d etfs=%d buy=%d",
            len(result.popular), len(result.etfs), len(result.buy_candidates),
        )
        return result

    async def build_pool(
        self,
        api_key: Optional[str],
        symbols: Sequence[str] = (),
    ) -> list[str]:
        """Merge requested, most-viewed and listed symbols up to the pool cap."""
        cap = self.config.recommend.pool_cap
        try:
            universe = await self.source.fetch_listings(api_key)
        except Exception as exc:
            logger.error("Universe listing fetch failed: %s", exc)
            raise UniverseFetchError(f"Universe listing fetch failed: {exc}") from exc

        most_viewed = [m.symbol for m in self.app_views.most_viewed(cap)]

        pool: list[str] = []
        seen: set[str] = set()
        for raw in (*symbols, *most_viewed, *universe):
            symbol = raw.strip().upper()
            if not symbol or symbol in seen:
                continue
            seen.add(symbol)
            pool.append(symbol)
            if len(pool) >= cap:
                break
        return pool

    async def _analyse_symbol(
        self,
        semaphore: asyncio.Semaphore,
        symbol:    str,
        api_key:   Optional[str],
        mode:      Horizon,
    ) -> SymbolOutcome:
        key = (api_key or "", mode.value, symbol)
        async with semaphore:
            try:
                snapshot, hit = await self.cache.get_or_compute(
                    key, lambda: self._fetch_and_analyse(symbol, api_key, mode)
                )
            except Exception as exc:
                logger.warning("Symbol %s dropped: %s", symbol, exc)
                return SymbolOutcome(symbol=symbol, error=str(exc) or type(exc).__name__)
        if hit:
            logger.debug("Cache hit for %s (%s)", symbol, mode)
        return SymbolOutcome(symbol=symbol, snapshot=snapshot, cache_hit=hit)

    async def _fetch_and_analyse(
        self,
        symbol:  str,
        api_key: Optional[str],
        mode:    Horizon,
    ) -> CandidateSnapshot:
        daily, monthly, overview, profile = await asyncio.gather(
            self.source.fetch_daily_adjusted(symbol, api_key),
            self.source.fetch_monthly_adjusted(symbol, api_key),
            self.source.fetch_overview(symbol, api_key),
            self.source.fetch_etf_profile(symbol, api_key),
            return_exceptions=True,
        )
        for series in (daily, monthly):
            if isinstance(series, BaseException):
                raise series
        if isinstance(overview, BaseException):
            logger.info("Overview unavailable for %s: %s", symbol, overview)
            overview = None
        if isinstance(profile, BaseException):
            logger.info("ETF profile unavailable for %s: %s", symbol, profile)
            profile = None

        result = analyse_series(
            daily, monthly, mode=mode, profile=profile, overview=overview, config=self.config
        )
        return build_snapshot(
            symbol,
            daily,
            monthly,
            result,
            profile=profile,
            overview=overview,
            lookback_days=self.config.recommend.volume_lookback_days,
        )


def score_candidates(
    snapshots: Sequence[CandidateSnapshot],
    config:    Optional[AppConfig] = None,
) -> list[CandidateSnapshot]:
    """Attach candidate composites, pool-relative confidence and buy score.

    ETFs are compared on ``etf_score`` against the largest ETF score in the
    pool; every other instrument on ``popularity_score`` against the largest
    non-ETF popularity.  ABSTAIN snapshots keep their confidence.  Only BUY
    decisions receive a ``buy_score`` (adjusted confidence × 100).
    """
    cfg = config or AppConfig()
    cand_cfg = cfg.candidates

    popularity = {s.symbol: popularity_score(s, cand_cfg) for s in snapshots}
    etf = {
        s.symbol: etf_score(s, cand_cfg)
        for s in snapshots
        if s.instrument_type == InstrumentType.ETF
    }

    def raw(s: CandidateSnapshot) -> float:
        return etf[s.symbol] if s.symbol in etf else popularity[s.symbol]

    active = [s for s in snapshots if s.decision != Decision.ABSTAIN]
    max_etf = max((raw(s) for s in active if s.symbol in etf), default=0.0)
    max_other = max((raw(s) for s in active if s.symbol not in etf), default=0.0)

    scored: list[CandidateSnapshot] = []
    for snap in snapshots:
        confidence = snap.confidence
        if snap.decision != Decision.ABSTAIN:
            pool_max = max_etf if snap.symbol in etf else max_other
            confidence = adjust_confidence(snap.confidence, raw(snap), pool_max, cand_cfg)
        buy_score = (
            round(confidence * 100.0, 1) if snap.decision == Decision.BUY else None
        )
        scored.append(
            snap.model_copy(
                update={
                    "confidence": confidence,
                    "popularity_score": popularity[snap.symbol],
                    "etf_score": etf.get(snap.symbol),
                    "buy_score": buy_score,
                }
            )
        )
    return scored
