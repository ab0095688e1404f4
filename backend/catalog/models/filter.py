"""
Filter shape shared by the query endpoint and the client coordinator.
"""

import json
import re
from enum import Enum
from typing import List, Mapping, Optional

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from catalog.core.errors import ValidationError
from catalog.models.property import CamelModel, Category, PossessionStatus, TransactionType

ALL = "ALL"


class SortKey(str, Enum):
    FEATURED = "featured"  # catalog order
    NEWEST = "newest"
    PRICE_LOW_HIGH = "price_asc"
    PRICE_HIGH_LOW = "price_desc"
    AREA_LARGE_SMALL = "area_desc"


# Query parameter -> field name
QUERY_PARAMS = {
    "search": "search",
    "category": "category",
    "transactionType": "transaction_type",
    "possession": "possession",
    "location": "location",
    "minPrice": "min_price",
    "maxPrice": "max_price",
    "minCarpetArea": "min_carpet_area",
    "maxCarpetArea": "max_carpet_area",
    "bedrooms": "bedrooms",
    "verified": "verified_only",
    "featured": "featured_only",
    "limit": "limit",
    "offset": "offset",
    "sort": "sort",
}
_FIELD_TO_PARAM = {field: param for param, field in QUERY_PARAMS.items()}

# Refined on the client against already-fetched pages
LOCAL_REFINEMENT_FIELDS = (
    "min_price",
    "max_price",
    "min_carpet_area",
    "max_carpet_area",
    "possession",
    "bedrooms",
    "sort",
)


class PropertyFilter(CamelModel):
    """
    A catalog query. None on category/transaction_type/possession means ALL.
    """
    search: str = ""
    category: Optional[Category] = None
    transaction_type: Optional[TransactionType] = None
    possession: Optional[PossessionStatus] = None
    location: str = ""

    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    min_carpet_area: Optional[float] = Field(default=None, ge=0)
    max_carpet_area: Optional[float] = Field(default=None, ge=0)
    bedrooms: List[int] = []  # 5 means "5 or more"

    verified_only: bool = False
    featured_only: bool = False

    limit: int = Field(default=50, ge=1)
    offset: int = Field(default=0, ge=0)
    sort: SortKey = SortKey.FEATURED

    @field_validator("category", "transaction_type", "possession", mode="before")
    @classmethod
    def _all_means_none(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if value.upper() in ("", ALL):
                return None
            return value.lower()
        return value

    @field_validator("search", "location", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("bedrooms", mode="before")
    @classmethod
    def _parse_bedrooms(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        counts = set()
        for item in value:
            if isinstance(item, int):
                counts.add(item)
                continue
            # "2", "2 BHK", "5+ BHK"
            match = re.search(r"\d+", str(item))
            if match:
                counts.add(int(match.group()))
        return sorted(counts)

    @property
    def is_all_categories(self) -> bool:
        return self.category is None

    def cache_key(self) -> str:
        """
        Canonical JSON of the filter with pagination at its baseline.

        One cache entry serves every page of the same logical query.
        """
        data = self.model_dump(mode="json", by_alias=True)
        data["offset"] = 0
        data["limit"] = 0
        data["search"] = self.search.lower()
        data["location"] = self.location.lower()
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    def server_part(self) -> "PropertyFilter":
        """Copy with the client-side refinement fields reset."""
        defaults = PropertyFilter()
        return self.model_copy(update={name: getattr(defaults, name) for name in LOCAL_REFINEMENT_FIELDS})

    def to_query_params(self) -> dict[str, str]:
        """Flat query parameters understood by the query endpoint."""
        params = {
            "category": self.category.value if self.category else ALL,
            "transactionType": self.transaction_type.value if self.transaction_type else ALL,
            "limit": str(self.limit),
            "offset": str(self.offset),
        }
        if self.search:
            params["search"] = self.search
        if self.location:
            params["location"] = self.location
        if self.possession:
            params["possession"] = self.possession.value
        for field in ("min_price", "max_price", "min_carpet_area", "max_carpet_area"):
            value = getattr(self, field)
            if value is not None:
                params[_FIELD_TO_PARAM[field]] = f"{value:.15g}"
        if self.bedrooms:
            params["bedrooms"] = ",".join(str(b) for b in self.bedrooms)
        if self.verified_only:
            params["verified"] = "true"
        if self.featured_only:
            params["featured"] = "true"
        if self.sort != SortKey.FEATURED:
            params["sort"] = self.sort.value
        return params

    @classmethod
    def from_query_params(
        cls,
        params: Mapping[str, str],
        default_limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ) -> "PropertyFilter":
        """
        Build a filter from flat query parameters.

        Blank parameters are ignored. Raises ValidationError listing the
        offending parameter names.
        """
        data = {}
        if default_limit is not None:
            data["limit"] = default_limit
        for param, field in QUERY_PARAMS.items():
            value = params.get(param)
            if value is None or str(value).strip() == "":
                continue
            data[field] = value

        try:
            result = cls.model_validate(data)
        except PydanticValidationError as e:
            fields = sorted({
                _FIELD_TO_PARAM.get(str(err["loc"][0]), str(err["loc"][0]))
                for err in e.errors() if err.get("loc")
            })
            raise ValidationError("Invalid filter parameters", fields=fields) from e

        if max_limit is not None and result.limit > max_limit:
            result = result.model_copy(update={"limit": max_limit})
        return result
