"""
Multi-category aggregation.

For ALL, every category sheet is fetched concurrently and merged. A failed
category is logged and left out of the merge (availability over
completeness); only when every category fails does the aggregate fail.
The merged list is searched, filtered and put in catalog order before the
total is counted and the page is sliced.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from catalog.core.errors import PartialAggregationWarning, UpstreamError
from catalog.models.filter import PropertyFilter, SortKey
from catalog.models.property import Category, Property
from catalog.services.refinement import (
    matches_location,
    matches_refinements,
    matches_search,
    sort_catalog,
    sort_properties,
)

logger = logging.getLogger(__name__)


class CategorySource(Protocol):
    categories: list

    async def fetch(self, category: Category, property_filter: Optional[PropertyFilter] = None) -> list[Property]:
        ...


@dataclass(frozen=True)
class AggregateResult:
    """Items plus the post-filter, pre-pagination total."""
    items: list[Property]
    total: int
    failed_categories: dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.failed_categories)

    def page(self, offset: int, limit: int) -> "AggregateResult":
        return AggregateResult(
            items=list(self.items[offset:offset + limit]),
            total=self.total,
            failed_categories=dict(self.failed_categories),
        )


def _category_name(category) -> str:
    return getattr(category, "value", str(category))


class Aggregator:
    """Fans out to the category adapter and merges, filters, sorts, paginates."""

    def __init__(self, source: CategorySource, categories: Optional[Iterable] = None):
        self.source = source
        self.categories = list(categories) if categories is not None else list(source.categories)

    async def query(self, property_filter: PropertyFilter) -> AggregateResult:
        """One page of results for the filter."""
        result = await self.collect(property_filter)
        return result.page(property_filter.offset, property_filter.limit)

    async def collect(self, property_filter: PropertyFilter) -> AggregateResult:
        """All matching properties, in order, without pagination."""
        if property_filter.category is not None:
            merged = await self.source.fetch(property_filter.category, property_filter)
            failed: dict[str, str] = {}
        else:
            merged, failed = await self._fan_out(property_filter)

        items = [
            p for p in merged
            if matches_search(p, property_filter.search)
            and matches_location(p, property_filter.location)
            and matches_refinements(p, property_filter)
        ]
        items = sort_catalog(items)
        if property_filter.sort != SortKey.FEATURED:
            items = sort_properties(items, property_filter.sort)

        return AggregateResult(items=items, total=len(items), failed_categories=failed)

    async def _fan_out(self, property_filter: PropertyFilter) -> tuple[list[Property], dict[str, str]]:
        if not self.categories:
            return [], {}

        results = await asyncio.gather(
            *(self.source.fetch(category, property_filter) for category in self.categories),
            return_exceptions=True,
        )

        merged: list[Property] = []
        failed: dict[str, str] = {}
        for category, result in zip(self.categories, results):
            name = _category_name(category)
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                if isinstance(result, UpstreamError):
                    logger.error(f"Category {name} failed: {result}")
                else:
                    logger.exception(f"Category {name} failed unexpectedly", exc_info=result)
                failed[name] = str(result)
                continue
            merged.extend(result)

        if len(failed) == len(self.categories):
            raise UpstreamError(f"All categories failed: {', '.join(sorted(failed))}")
        if failed:
            warning = PartialAggregationWarning(failed)
            logger.warning(f"Partial aggregation: {warning}")

        return merged, failed
