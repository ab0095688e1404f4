from catalog.models.property import (
    Category,
    Contact,
    MediaItem,
    MediaKind,
    PossessionStatus,
    PriceType,
    Property,
    TransactionType,
)
from catalog.models.filter import PropertyFilter, SortKey

__all__ = [
    "Category",
    "Contact",
    "MediaItem",
    "MediaKind",
    "PossessionStatus",
    "PriceType",
    "Property",
    "TransactionType",
    "PropertyFilter",
    "SortKey",
]
