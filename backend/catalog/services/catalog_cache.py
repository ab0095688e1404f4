"""
Read-through TTL cache in front of the aggregator, with stale fallback.

Entries are keyed by the canonical filter with pagination at its baseline,
and hold the full ordered result set; pages are slices of one entry.

Degradation order when an entry is missing or expired:
fresh fetch -> expired-but-present entry served as "stale" -> error.
Once a query has succeeded, its catalog never goes blank because the
Catalog Source is down.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from catalog.core.config import settings
from catalog.core.errors import UpstreamError
from catalog.models.filter import PropertyFilter
from catalog.models.property import Property
from catalog.services.aggregator import Aggregator

logger = logging.getLogger(__name__)


class ServedFrom(str, Enum):
    FRESH = "fresh"
    CACHE = "cache"
    STALE = "stale"


@dataclass(frozen=True)
class CacheEntry:
    """Full result set for one logical query. Replaced, never mutated."""
    key: str
    items: tuple[Property, ...]
    total: int
    fetched_at: float
    failed_categories: tuple[str, ...] = ()


@dataclass(frozen=True)
class CachedPage:
    items: list[Property]
    total: int
    served_from: ServedFrom
    fetched_at: float
    failed_categories: tuple[str, ...] = ()


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[CacheEntry]: ...

    def set(self, key: str, entry: CacheEntry) -> None: ...

    def clear(self) -> None: ...

    def entries(self) -> list[CacheEntry]: ...


class InMemoryCacheStore:
    """
    Process-local store. Owned by one long-lived CatalogService.

    Holds at most max_entries entries; adding past the bound evicts the
    entry with the oldest fetched_at.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries if max_entries is not None else settings.CACHE_MAX_ENTRIES
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        if key not in self._entries and self.max_entries > 0:
            while len(self._entries) >= self.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].fetched_at)
                del self._entries[oldest]
                logger.info(f"Catalog cache full, evicted {oldest}")
        self._entries[key] = entry

    def clear(self) -> None:
        self._entries = {}

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())


class ResilientCache:
    """TTL cache over Aggregator.collect with stale-on-failure fallback."""

    def __init__(
        self,
        aggregator: Aggregator,
        store: Optional[CacheStore] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        single_flight: Optional[bool] = None,
    ):
        self.aggregator = aggregator
        self.store = store if store is not None else InMemoryCacheStore()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.CACHE_TTL_SECONDS
        self.clock = clock
        self.single_flight = settings.CACHE_SINGLE_FLIGHT if single_flight is None else single_flight
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.fetched_at < self.ttl_seconds

    @staticmethod
    def _slice(entry: CacheEntry, property_filter: PropertyFilter, served_from: ServedFrom) -> CachedPage:
        start = property_filter.offset
        return CachedPage(
            items=list(entry.items[start:start + property_filter.limit]),
            total=entry.total,
            served_from=served_from,
            fetched_at=entry.fetched_at,
            failed_categories=entry.failed_categories,
        )

    async def get(self, property_filter: PropertyFilter) -> CachedPage:
        key = property_filter.cache_key()
        entry = self.store.get(key)
        if entry is not None and self._is_fresh(entry):
            logger.debug(f"Catalog cache hit for {key} ({entry.total} properties)")
            return self._slice(entry, property_filter, ServedFrom.CACHE)

        if not self.single_flight:
            return await self._refresh(key, property_filter)

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                # Another request may have refilled the entry while we waited
                entry = self.store.get(key)
                if entry is not None and self._is_fresh(entry):
                    return self._slice(entry, property_filter, ServedFrom.CACHE)
                return await self._refresh(key, property_filter)
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                # Nobody holds or waits on the lock any more
                del self._lock_users[key]
                self._locks.pop(key, None)

    async def _refresh(self, key: str, property_filter: PropertyFilter) -> CachedPage:
        logger.info(f"Catalog cache miss for {key}")
        try:
            result = await self.aggregator.collect(property_filter)
        except UpstreamError as e:
            previous = self.store.get(key)
            if previous is None:
                logger.error(f"Catalog fetch failed with no cached copy: {e}")
                raise
            age = int(self.clock() - previous.fetched_at)
            logger.warning(f"Catalog fetch failed, serving stale copy ({age}s old): {e}")
            return self._slice(previous, property_filter, ServedFrom.STALE)

        entry = CacheEntry(
            key=key,
            items=tuple(result.items),
            total=result.total,
            fetched_at=self.clock(),
            failed_categories=tuple(sorted(result.failed_categories)),
        )
        self.store.set(key, entry)
        return self._slice(entry, property_filter, ServedFrom.FRESH)

    def clear(self):
        self.store.clear()
        logger.info("Catalog cache cleared")

    def stats(self) -> dict:
        entries = self.store.entries()
        return {
            "total_entries": len(entries),
            "valid_entries": sum(1 for entry in entries if self._is_fresh(entry)),
            "ttl_seconds": self.ttl_seconds,
            "single_flight": self.single_flight,
        }
