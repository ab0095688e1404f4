"""
Canonical property record.

Every category sheet, whatever its column layout, is normalized into this
shape. Identity is always (category, id): ids are serial numbers that repeat
across sheets.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    """Backing categories, one sheet each."""
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    BUNGALOW = "bungalow"


class TransactionType(str, Enum):
    BUY = "buy"
    LEASE = "lease"
    UNKNOWN = "unknown"


class PriceType(str, Enum):
    TOTAL = "total"
    PER_SQFT = "per_sqft"
    PER_MONTH = "per_month"


class PossessionStatus(str, Enum):
    READY = "ready"
    UNDER_CONSTRUCTION = "under_construction"
    UNKNOWN = "unknown"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class MediaItem(CamelModel):
    """A classified media URL."""
    kind: MediaKind
    url: str
    delivery_url: str


class Contact(CamelModel):
    name: str
    phone: str
    email: str


class Property(CamelModel):
    """A property listing, rebuilt from its source row on every cache miss."""
    id: str
    category: Category
    transaction_type: TransactionType = TransactionType.BUY

    title: str
    location: str
    area_label: str = ""

    price: str
    price_type: PriceType = PriceType.TOTAL

    configuration: str = ""
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    carpet_area: float = Field(default=0.0, ge=0)
    built_up_area: float = Field(default=0.0, ge=0)

    media: List[MediaItem] = []

    # Positional convention: first rows of each sheet, not a stored flag
    featured: bool = False
    verified: bool = True
    possession_status: PossessionStatus = PossessionStatus.UNKNOWN

    furnished: str = ""
    amenities: List[str] = []
    description: str = ""
    contact: Optional[Contact] = None

    # Informational only
    posted_date: Optional[date] = None
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)

    @computed_field
    @property
    def images(self) -> List[str]:
        return [m.delivery_url for m in self.media if m.kind == MediaKind.IMAGE]

    @computed_field
    @property
    def videos(self) -> List[str]:
        return [m.delivery_url for m in self.media if m.kind == MediaKind.VIDEO]

    @property
    def key(self) -> tuple[str, str]:
        """Identity of this property across categories."""
        return (self.category.value, self.id)

    @property
    def numeric_id(self) -> float:
        """Serial number as a number; non-numeric ids sort last."""
        try:
            value = float(self.id)
        except ValueError:
            return float("inf")
        return value if value == value else float("inf")
