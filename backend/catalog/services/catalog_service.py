"""
Long-lived catalog service: adapter, aggregator and cache wired together.

One instance lives on app.state for the life of the process and owns the
cache store, so tests can build a fresh one per test.
"""

import logging
from typing import Optional

import httpx

from catalog.models.filter import PropertyFilter
from catalog.services.aggregator import Aggregator
from catalog.services.catalog_cache import CachedPage, CacheStore, ResilientCache
from catalog.services.catalog_source import CatalogSourceAdapter

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, adapter: CatalogSourceAdapter, cache: ResilientCache):
        self.adapter = adapter
        self.cache = cache

    @classmethod
    def create(
        cls,
        client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        store: Optional[CacheStore] = None,
        ttl_seconds: Optional[float] = None,
    ) -> "CatalogService":
        adapter = CatalogSourceAdapter(client, base_url=base_url)
        cache = ResilientCache(Aggregator(adapter), store=store, ttl_seconds=ttl_seconds)
        if not adapter.configured:
            logger.warning("Catalog Source URL not configured; the catalog will be empty")
        return cls(adapter, cache)

    async def get_page(self, property_filter: PropertyFilter) -> CachedPage:
        return await self.cache.get(property_filter)

    async def submit(self, payload: dict) -> dict:
        return await self.adapter.submit(payload)
