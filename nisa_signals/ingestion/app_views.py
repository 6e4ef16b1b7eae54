"""
In-app view counters.

``AppViewsRepository`` supplies the ``app_views`` figure on each candidate
snapshot and seeds the recommendation pool with the most-viewed symbols.
Counts live in memory for the lifetime of the process; ``load()`` bulk-seeds
them from the ``[[app_views.seed]]`` config entries at startup, and
``GET /recommend`` / ``POST /score`` record a view per requested symbol.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional


@dataclass
class ViewMetric:
    """View count for one symbol."""

    symbol:         str
    views:          int
    last_viewed_at: Optional[dt.datetime] = None


class AppViewsRepository:
    """Symbol → view-count store.  Symbols are normalised to upper case."""

    def __init__(self) -> None:
        self._metrics: dict[str, ViewMetric] = {}

    @classmethod
    def from_records(cls, records: Iterable[Mapping]) -> "AppViewsRepository":
        """Build a repository seeded with ``load(records)``."""
        repo = cls()
        repo.load(records)
        return repo

    def record_view(self, symbol: str, at: Optional[dt.datetime] = None) -> int:
        """Increment ``symbol``'s count and return the new total."""
        key = symbol.strip().upper()
        metric = self._metrics.get(key)
        if metric is None:
            metric = self._metrics[key] = ViewMetric(symbol=key, views=0)
        metric.views += 1
        metric.last_viewed_at = at or dt.datetime.now(dt.timezone.utc)
        return metric.views

    def load(self, metrics: Iterable[Mapping]) -> None:
        """Upsert ``{"symbol": ..., "views": ...}`` records.

        A record without ``views`` keeps the stored count.
        """
        for record in metrics:
            key = str(record["symbol"]).strip().upper()
            existing = self._metrics.get(key)
            views = record.get("views")
            if views is None:
                views = existing.views if existing else 0
            last_viewed = record.get("last_viewed_at") or (
                existing.last_viewed_at if existing else None
            )
            self._metrics[key] = ViewMetric(
                symbol=key, views=int(views), last_viewed_at=last_viewed
            )

    def views(self, symbol: str) -> int:
        metric = self._metrics.get(symbol.strip().upper())
        return metric.views if metric else 0

    def most_viewed(self, limit: int) -> list[ViewMetric]:
        """Top ``limit`` symbols by views descending, ties by symbol ascending."""
        ordered = sorted(self._metrics.values(), key=lambda m: (-m.views, m.symbol))
        return ordered[:max(0, limit)]

    def __len__(self) -> int:
        return len(self._metrics)
