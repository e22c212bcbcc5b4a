"""
In-process cache for resolved market data.

Two families share one key space:
- positive entries hold a resolved value (Quote, HistoricalPrice, PriceSeries,
  ExchangeRate) until their TTL elapses
- negative entries record that resolution failed, so callers can skip
  upstream providers for a cooldown window

Writing either family for a key replaces whatever the key held before.
Unsynchronized and best-effort: concurrent writers race, last one wins.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

from pricefeed.core.config import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """One cached value (or failure marker) with its write time."""

    key: Hashable
    value: Any
    written_at: float
    ttl: float
    failed: bool = False

    def is_expired(self, now: float) -> bool:
        return now - self.written_at >= self.ttl


class QuoteCache:
    """
    TTL cache keyed by resolution request.

    Keys are tuples such as ("quote", "PETR4", "stock", "BRL").
    The clock is injectable so tests can move time forward.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def _live_entry(self, key: Hashable) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    # ============ Positive family ============

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None on miss/expiry/failure marker."""
        entry = self._live_entry(key)
        if entry is None or entry.failed:
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def put(self, key: Hashable, value: Any, ttl: float) -> None:
        """Store a successful result (replaces any failure marker)."""
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            written_at=self._clock(),
            ttl=ttl,
        )

    # ============ Negative family ============

    def mark_failed(self, key: Hashable, ttl: Optional[float] = None) -> None:
        """Record a failed resolution (replaces any cached value)."""
        self._entries[key] = CacheEntry(
            key=key,
            value=None,
            written_at=self._clock(),
            ttl=settings.failure_cache_ttl if ttl is None else ttl,
            failed=True,
        )
        logger.debug(f"Suppressing {key} for {self._entries[key].ttl}s")

    def is_failed(self, key: Hashable) -> bool:
        entry = self._live_entry(key)
        return entry is not None and entry.failed

    # ============ Housekeeping ============

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> Dict[str, int]:
        """Counts for diagnostics (expired entries are purged first)."""
        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.is_expired(now)]:
            del self._entries[key]

        failed = sum(1 for e in self._entries.values() if e.failed)
        return {
            "entries": len(self._entries) - failed,
            "failed": failed,
            "hits": self._hits,
            "misses": self._misses,
        }


# Singleton instance
_quote_cache: Optional[QuoteCache] = None


def get_quote_cache() -> QuoteCache:
    """Get the process-wide cache singleton."""
    global _quote_cache
    if _quote_cache is None:
        _quote_cache = QuoteCache()
    return _quote_cache
