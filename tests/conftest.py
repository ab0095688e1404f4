"""Shared fixtures and builders for the catalog tests."""

from datetime import date

import pytest

from catalog.core.errors import UpstreamError
from catalog.models.property import Category, Property

FETCH_DATE = date(2026, 10, 1)

COMMERCIAL_ROWS = [
    ["1", "Shop", "450", "600", "Kharghar Sector 12", "1.2 Cr", "Buy",
     "https://res.cloudinary.com/demo/image/upload/v1/shop.jpg"],
    ["2", "Office Space", "1200", "1500", "CBD Belapur", "85000", "Lease", ""],
    ["", "", "", "", "", "", "", ""],
    ["4", "Showroom", "2000", "2400", "Turbhe", "3.5 Cr", "Sale",
     "https://res.cloudinary.com/demo/video/upload/v1/walkthrough.mp4,"
     "https://res.cloudinary.com/demo/image/upload/v1/front.jpg"],
]

RESIDENTIAL_ROWS = [
    ["1", "2 BHK", "650", "850", "Kharghar", "85 L", "Buy", ""],
    ["2", "3 BHK", "950", "1200", "Vashi Sector 17", "35000", "Rent", ""],
    ["3", "1 RK", "300", "380", "Ulwe", "28 L", "", ""],
    ["4", "4 BHK Duplex", "2100", "2600", "Nerul", "2.75 Cr", "Buy/Sale", ""],
]

BUNGALOW_ROWS = [
    ["1", "4 BHK Villa", "2500", "3200", "New Panvel", "1,50,00,000",
     "https://drive.google.com/file/d/abc123XYZ/view?usp=sharing"],
    ["2", "5 BHK Bungalow", "4000", "5000", "Karjat", "4.2 Cr", ""],
]

SOURCE_ROWS = {
    "COMMERCIAL": COMMERCIAL_ROWS,
    "RESIDENTIAL": RESIDENTIAL_ROWS,
    "BUNGALOW": BUNGALOW_ROWS,
}


def make_property(
    id: str,
    category: Category = Category.RESIDENTIAL,
    featured: bool = False,
    price: str = "50 L",
    **overrides,
) -> Property:
    data = dict(
        id=id,
        category=category,
        title=f"Property {id}",
        location="Kharghar, Navi Mumbai",
        area_label="Kharghar",
        price=price,
        configuration="2 BHK",
        bedrooms=2,
        bathrooms=2,
        featured=featured,
        posted_date=FETCH_DATE,
    )
    data.update(overrides)
    return Property(**data)


class StubSource:
    """
    Category source returning canned properties per category.

    A category mapped to an exception raises it instead.
    """

    def __init__(self, data: dict):
        self.data = data
        self.categories = list(data)
        self.calls = []

    async def fetch(self, category, property_filter=None):
        self.calls.append(category)
        result = self.data[category]
        if isinstance(result, BaseException):
            raise result
        return list(result)


@pytest.fixture
def catalog_properties():
    residential = [make_property(str(i), Category.RESIDENTIAL, featured=i <= 3) for i in range(1, 61)]
    commercial = [make_property(str(i), Category.COMMERCIAL, featured=i <= 3,
                                title=f"Commercial Shop {i}", configuration="Shop")
                  for i in range(1, 61)]
    bungalow = [make_property(str(i), Category.BUNGALOW, featured=i <= 3,
                              location="Panvel, Navi Mumbai", area_label="New Panvel")
                for i in range(1, 21)]
    return {
        Category.RESIDENTIAL: residential,
        Category.COMMERCIAL: commercial,
        Category.BUNGALOW: bungalow,
    }


@pytest.fixture
def upstream_down():
    return UpstreamError("connection refused")
