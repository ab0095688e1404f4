from catalog.services.aggregator import AggregateResult, Aggregator
from catalog.services.catalog_cache import CachedPage, InMemoryCacheStore, ResilientCache, ServedFrom
from catalog.services.catalog_service import CatalogService
from catalog.services.catalog_source import CatalogSourceAdapter

__all__ = [
    "AggregateResult",
    "Aggregator",
    "CachedPage",
    "InMemoryCacheStore",
    "ResilientCache",
    "ServedFrom",
    "CatalogService",
    "CatalogSourceAdapter",
]
