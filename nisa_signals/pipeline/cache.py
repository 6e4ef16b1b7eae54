"""
Time-boxed cache for per-symbol analysis results.

One ``TTLCache`` is owned by each ``RecommendationOrchestrator`` instance
(never a module-level singleton) and keyed by ``(api_key, mode, symbol)``.
Entries expire ``ttl_seconds`` after they were written and are then
recomputed and replaced.

Concurrency
-----------
``get`` / ``set`` / ``evict`` are plain dict operations; under the asyncio
event loop they run without interleaving, so each is atomic per key.
``get_or_compute`` additionally holds a per-key ``asyncio.Lock`` across the
miss → compute → store sequence, so concurrent requests for the same key
compute once and share the result.  Reimplementing this on OS threads would
need a ``threading.Lock`` around the store as well.

The clock is injectable for deterministic expiry tests.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value:      V
    expires_at: float


@dataclass
class _KeyLock:
    lock:  asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class TTLCache(Generic[V]):
    """Keyed cache whose entries expire after a fixed TTL.

    Args:
        ttl_seconds: Lifetime of an entry after ``set``.
        clock:       Monotonic time source; defaults to ``time.monotonic``.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}.")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, _Entry[V]] = {}
        self._locks: dict[Hashable, _KeyLock] = {}

    def get(self, key: Hashable) -> Optional[V]:
        """Return the live value for ``key``, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: Hashable, value: V) -> None:
        """Store ``value`` under ``key``, replacing any previous entry.

        Expired entries under other keys are purged on the way.
        """
        self.purge_expired()
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def purge_expired(self) -> int:
        """Drop every expired entry.  Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now > e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def evict(self, key: Hashable) -> bool:
        """Remove ``key``.  Returns True if an entry was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    @property
    def pending_keys(self) -> int:
        """Keys with a ``get_or_compute`` currently holding or awaiting a lock."""
        return len(self._locks)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    async def get_or_compute(
        self,
        key: Hashable,
        factory: Callable[[], Awaitable[V]],
    ) -> tuple[V, bool]:
        """Return ``(value, hit)``, computing and storing on a miss.

        Exceptions from ``factory`` propagate and nothing is stored.  The
        per-key lock is released from the table once no caller holds or
        awaits it.
        """
        cached = self.get(key)
        if cached is not None:
            return cached, True

        slot = self._locks.get(key)
        if slot is None:
            slot = self._locks[key] = _KeyLock()
        slot.users += 1
        try:
            async with slot.lock:
                cached = self.get(key)
                if cached is not None:
                    return cached, True
                value = await factory()
                self.set(key, value)
                return value, False
        finally:
            slot.users -= 1
            if slot.users == 0 and self._locks.get(key) is slot:
                del self._locks[key]
