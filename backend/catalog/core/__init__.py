from catalog.core.config import settings
from catalog.core.errors import (
    CatalogError,
    CatalogClientError,
    PartialAggregationWarning,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "settings",
    "CatalogError",
    "CatalogClientError",
    "PartialAggregationWarning",
    "UpstreamError",
    "ValidationError",
]
