"""
Filtering and ordering of normalized properties.

Used by the aggregator for server-side filtering and by the client
coordinator to refine already-fetched pages without a round trip.
"""

from datetime import date
from typing import Iterable, List, Optional, Sequence

from catalog.models.filter import PropertyFilter, SortKey
from catalog.models.property import Category, Property
from catalog.services.pricing import parse_to_number, price_sort_key

CATEGORY_ORDER = [c for c in Category]


def matches_search(prop: Property, search: str) -> bool:
    """Case-insensitive substring over title, location, area and configuration."""
    if not search:
        return True
    needle = search.lower()
    return any(
        needle in text.lower()
        for text in (prop.title, prop.location, prop.area_label, prop.configuration)
    )


def matches_location(prop: Property, location: str) -> bool:
    if not location:
        return True
    needle = location.lower()
    return needle in prop.location.lower() or needle in prop.area_label.lower()


def matches_price_range(prop: Property, min_price: Optional[float], max_price: Optional[float]) -> bool:
    """
    Unknown prices (parsed as 0) never satisfy an active price range.
    """
    if min_price is None and max_price is None:
        return True
    value = parse_to_number(prop.price)
    if value <= 0:
        return False
    if min_price is not None and value < min_price:
        return False
    if max_price is not None and value > max_price:
        return False
    return True


def matches_carpet_area(prop: Property, min_area: Optional[float], max_area: Optional[float]) -> bool:
    if min_area is not None and prop.carpet_area < min_area:
        return False
    if max_area is not None and prop.carpet_area > max_area:
        return False
    return True


def matches_bedrooms(prop: Property, bedrooms: Sequence[int]) -> bool:
    if not bedrooms:
        return True
    top = max(bedrooms)
    # The largest choice offered is "N or more"
    return prop.bedrooms in bedrooms or (top >= 5 and prop.bedrooms >= top)


def matches_refinements(prop: Property, f: PropertyFilter) -> bool:
    return (
        (f.possession is None or prop.possession_status == f.possession)
        and matches_price_range(prop, f.min_price, f.max_price)
        and matches_carpet_area(prop, f.min_carpet_area, f.max_carpet_area)
        and matches_bedrooms(prop, f.bedrooms)
        and (not f.verified_only or prop.verified)
        and (not f.featured_only or prop.featured)
    )


def apply_refinements(items: Iterable[Property], f: PropertyFilter) -> List[Property]:
    return [p for p in items if matches_refinements(p, f)]


def _recency(prop: Property) -> int:
    return prop.posted_date.toordinal() if prop.posted_date else date.min.toordinal()


def catalog_order_key(prop: Property) -> tuple:
    """
    Featured first, verified first, newest first, then serial number.

    Category order breaks the remaining ties so paging is deterministic
    when ids repeat across categories.
    """
    return (
        not prop.featured,
        not prop.verified,
        -_recency(prop),
        prop.numeric_id,
        prop.id,
        CATEGORY_ORDER.index(prop.category),
    )


def sort_catalog(items: Iterable[Property]) -> List[Property]:
    return sorted(items, key=catalog_order_key)


def sort_properties(items: Iterable[Property], sort: SortKey) -> List[Property]:
    """Order by a user sort choice; every ordering is stable."""
    items = list(items)
    if sort == SortKey.NEWEST:
        return sorted(items, key=lambda p: -_recency(p))
    if sort == SortKey.PRICE_LOW_HIGH:
        return sorted(items, key=lambda p: price_sort_key(p.price))
    if sort == SortKey.PRICE_HIGH_LOW:
        return sorted(items, key=lambda p: -price_sort_key(p.price))
    if sort == SortKey.AREA_LARGE_SMALL:
        return sorted(items, key=lambda p: -p.carpet_area)
    return sort_catalog(items)
