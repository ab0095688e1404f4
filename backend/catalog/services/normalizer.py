"""
Field normalization for category sheet rows.

Each category sheet is a positional table with its own column layout (the
bungalow sheet has no BUY/Lease column). normalize_row maps one raw row to a
canonical Property. It is pure and never raises on malformed cells: bad
numbers become 0, missing cells become "".
"""

import re
import zlib
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, NamedTuple, Optional, Sequence

from catalog.core.config import settings
from catalog.models.property import (
    Category,
    Contact,
    PossessionStatus,
    PriceType,
    Property,
    TransactionType,
)
from catalog.services.media import split_media
from catalog.services.pricing import format_price


@dataclass(frozen=True)
class CategoryLayout:
    """Positional column map for one category sheet."""
    category: Category
    sheet_name: str
    columns: dict = field(default_factory=dict)

    @property
    def width(self) -> int:
        return max(self.columns.values()) + 1


CATEGORY_LAYOUTS: dict[Category, CategoryLayout] = {
    Category.COMMERCIAL: CategoryLayout(
        category=Category.COMMERCIAL,
        sheet_name="Commercial Projects",
        columns={
            "sr_no": 0,
            "config": 1,
            "carpet_size": 2,
            "built_up": 3,
            "node": 4,
            "price": 5,
            "buy_lease": 6,
            "photos": 7,
        },
    ),
    Category.RESIDENTIAL: CategoryLayout(
        category=Category.RESIDENTIAL,
        sheet_name="Residential Projects",
        columns={
            "sr_no": 0,
            "config": 1,
            "carpet_size": 2,
            "built_up": 3,
            "node": 4,
            "price": 5,
            "buy_lease": 6,
            "photos": 7,
        },
    ),
    Category.BUNGALOW: CategoryLayout(
        category=Category.BUNGALOW,
        sheet_name="Bungalow Projects",
        columns={
            "sr_no": 0,
            "config": 1,
            "carpet_size": 2,
            "built_up": 3,
            "node": 4,
            "price": 5,
            "photos": 6,  # no BUY/Lease column
        },
    ),
}

# Nodes we know, in match order
LOCATION_GAZETTEER = [
    ("kharghar", "Kharghar"),
    ("panvel", "Panvel"),
    ("ulwe", "Ulwe"),
    ("kamothe", "Kamothe"),
    ("nerul", "Nerul"),
    ("vashi", "Vashi"),
    ("belapur", "Belapur"),
    ("dronagiri", "Dronagiri"),
    ("taloja", "Taloja"),
    ("kalamboli", "Kalamboli"),
    ("seawoods", "Seawoods"),
    ("airoli", "Airoli"),
    ("ghansoli", "Ghansoli"),
    ("kopar khairane", "Kopar Khairane"),
    ("sanpada", "Sanpada"),
]

# (tokens, bedrooms), first match wins
BEDROOM_TOKENS = [
    (("1 bhk", "1bhk"), 1),
    (("2 bhk", "2bhk"), 2),
    (("3 bhk", "3bhk"), 3),
    (("4 bhk", "4bhk"), 4),
    (("5 bhk", "5bhk"), 5),
    (("studio", "1 rk", "1rk"), 0),
    (("shop", "office"), 0),
]
DEFAULT_BEDROOMS = 1


class KeywordRule(NamedTuple):
    keywords: tuple
    value: object


TRANSACTION_RULES = [
    KeywordRule(("lease", "rent"), TransactionType.LEASE),
    KeywordRule(("buy", "sale", "sell"), TransactionType.BUY),
]
DEFAULT_TRANSACTION = TransactionType.BUY

POSSESSION_RULES = [
    KeywordRule(("under construction", "under-construction", "u/c", "upcoming", "new launch"),
                PossessionStatus.UNDER_CONSTRUCTION),
    KeywordRule(("ready to move", "ready", "rtm", "immediate"), PossessionStatus.READY),
]

FURNISHED_DEFAULTS = {
    Category.COMMERCIAL: "Unfurnished",
}
AMENITY_DEFAULTS = {
    Category.COMMERCIAL: ["Power Backup", "Lift", "Parking", "Security"],
    Category.BUNGALOW: ["Garden", "Parking", "Security", "Independent"],
    Category.RESIDENTIAL: ["Security", "Power Backup", "Lift", "Parking"],
}

_LEADING_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def cell(row: Sequence, index: Optional[int]) -> str:
    """Cell text at a position; "" when the column or cell is missing."""
    if index is None or index < 0 or index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def parse_area(value: str) -> float:
    """Leading number of an area cell, 0 on failure or negative values."""
    match = _LEADING_NUMBER.search(value.replace(",", ""))
    if not match:
        return 0.0
    number = float(match.group())
    return number if number > 0 else 0.0


def _match_keywords(text: str, rules: Iterable[KeywordRule], default):
    lowered = text.lower()
    for rule in rules:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule.value
    return default


def determine_transaction_type(raw: str) -> TransactionType:
    """buy/sale/sell -> buy, lease/rent -> lease, anything else -> buy."""
    if not raw.strip():
        return DEFAULT_TRANSACTION
    return _match_keywords(raw, TRANSACTION_RULES, DEFAULT_TRANSACTION)


def determine_possession(*texts: str) -> PossessionStatus:
    for text in texts:
        status = _match_keywords(text, POSSESSION_RULES, None)
        if status is not None:
            return status
    return PossessionStatus.UNKNOWN


def extract_location(node: str, region: Optional[str] = None) -> str:
    region = region or settings.DEFAULT_REGION
    if not node:
        return region
    lowered = node.lower()
    for needle, name in LOCATION_GAZETTEER:
        if needle in lowered:
            return f"{name}, {region}"
    return f"{node}, {region}"


def extract_bedrooms(configuration: str) -> int:
    if not configuration:
        return 0
    lowered = configuration.lower()
    for tokens, bedrooms in BEDROOM_TOKENS:
        if any(token in lowered for token in tokens):
            return bedrooms
    return DEFAULT_BEDROOMS


def extract_bathrooms(configuration: str) -> int:
    bedrooms = extract_bedrooms(configuration)
    return 1 if bedrooms == 0 else bedrooms


def price_type_for(transaction_type: TransactionType, raw_price: str) -> PriceType:
    if transaction_type == TransactionType.LEASE:
        return PriceType.PER_MONTH
    lowered = raw_price.lower()
    if "sq ft" in lowered or "sqft" in lowered or "sq.ft" in lowered:
        return PriceType.PER_SQFT
    return PriceType.TOTAL


def build_title(configuration: str, category: Category, transaction_type: TransactionType) -> str:
    if not configuration:
        return "Property Available"
    purpose = "lease" if transaction_type == TransactionType.LEASE else "sale"
    if category == Category.COMMERCIAL:
        return f"Commercial {configuration} for {purpose}"
    return f"{configuration} for {purpose}"


def build_description(configuration: str, node: str, category: Category,
                      transaction_type: TransactionType) -> str:
    purpose = "rent" if transaction_type == TransactionType.LEASE else "purchase"
    place = extract_location(node)
    if category == Category.RESIDENTIAL:
        return (f"Beautiful {configuration} available for {purpose} in {place}. "
                f"Well-designed space with modern amenities and excellent connectivity.")
    if category == Category.COMMERCIAL:
        return (f"Premium commercial {configuration} available for {purpose} in {place}. "
                f"Ideal for business with excellent infrastructure and strategic location.")
    return (f"{configuration} with private space available for {purpose} in {place}. "
            f"Perfect for families looking for privacy and comfort.")


def synthesized_counter(category: Category, property_id: str, label: str, low: int, span: int) -> int:
    """Stable stand-in for a missing counter, derived from the row identity."""
    digest = zlib.crc32(f"{category.value}:{property_id}:{label}".encode("utf-8"))
    return low + digest % span


def normalize_row(
    raw_row: Sequence,
    layout: CategoryLayout,
    index: int = 0,
    *,
    fetched_on: Optional[date] = None,
    featured_count: Optional[int] = None,
) -> Optional[Property]:
    """
    Canonical Property for one sheet row, or None for a blank row.

    index is the row's position within its sheet and decides the
    positional featured flag.
    """
    if not isinstance(raw_row, (list, tuple)):
        return None
    columns = layout.columns
    sr_no = cell(raw_row, columns.get("sr_no"))
    if not sr_no:
        return None

    featured_count = settings.FEATURED_PER_CATEGORY if featured_count is None else featured_count
    category = layout.category

    configuration = cell(raw_row, columns.get("config"))
    node = cell(raw_row, columns.get("node"))
    raw_price = cell(raw_row, columns.get("price"))
    transaction_type = determine_transaction_type(cell(raw_row, columns.get("buy_lease")))

    return Property(
        id=sr_no,
        category=category,
        transaction_type=transaction_type,
        title=build_title(configuration, category, transaction_type),
        location=extract_location(node),
        area_label=node,
        price=format_price(raw_price),
        price_type=price_type_for(transaction_type, raw_price),
        configuration=configuration,
        bedrooms=extract_bedrooms(configuration),
        bathrooms=extract_bathrooms(configuration),
        carpet_area=parse_area(cell(raw_row, columns.get("carpet_size"))),
        built_up_area=parse_area(cell(raw_row, columns.get("built_up"))),
        media=split_media(cell(raw_row, columns.get("photos"))),
        featured=index < featured_count,
        verified=True,
        possession_status=determine_possession(cell(raw_row, columns.get("possession")), configuration),
        furnished=FURNISHED_DEFAULTS.get(category, "Semi-Furnished"),
        amenities=AMENITY_DEFAULTS.get(category, []),
        description=build_description(configuration, node, category, transaction_type),
        contact=Contact(
            name=settings.CONTACT_NAME,
            phone=settings.CONTACT_PHONE,
            email=settings.CONTACT_EMAIL,
        ),
        posted_date=fetched_on,
        views=synthesized_counter(category, sr_no, "views", 50, 200),
        likes=synthesized_counter(category, sr_no, "likes", 5, 30),
    )


def normalize_rows(rows: Iterable, layout: CategoryLayout, *,
                   fetched_on: Optional[date] = None) -> List[Property]:
    """
    Normalize a whole sheet, skipping blank rows.

    Row position counts blank rows too, matching the sheet as displayed.
    """
    properties = []
    for index, row in enumerate(rows):
        prop = normalize_row(row, layout, index, fetched_on=fetched_on)
        if prop is not None:
            properties.append(prop)
    return properties
