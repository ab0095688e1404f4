"""
Error taxonomy for the catalog pipeline.

- ValidationError: caller sent missing/invalid fields (HTTP 400).
- UpstreamError: the Catalog Source was unreachable or answered garbage.
  Recovered by the stale cache when possible, otherwise HTTP 502.
- PartialAggregationWarning: some, but not all, categories failed. Logged,
  never raised to callers.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for catalog errors."""


class ValidationError(CatalogError):
    """Missing or invalid request fields."""

    def __init__(self, message: str, fields: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class UpstreamError(CatalogError):
    """The Catalog Source failed or returned an unparseable body."""

    def __init__(self, message: str, category: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.category = category

    def __str__(self) -> str:
        if self.category:
            return f"{self.category}: {self.message}"
        return self.message


class CatalogClientError(CatalogError):
    """The query endpoint could not be reached or answered with a failure."""


class PartialAggregationWarning(UserWarning):
    """One or more category fetches failed while others succeeded."""

    def __init__(self, failed: dict[str, str]):
        super().__init__(f"Omitted categories: {', '.join(sorted(failed))}")
        self.failed = failed
