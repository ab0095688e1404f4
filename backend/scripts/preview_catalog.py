#!/usr/bin/env python3
"""
Script to preview the aggregated catalog straight from the Catalog Source.

Usage:
    python scripts/preview_catalog.py                        # All categories
    python scripts/preview_catalog.py --category commercial  # One category
    python scripts/preview_catalog.py --search kharghar --limit 5
"""

import sys
import argparse
import asyncio
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from catalog.core.config import settings
from catalog.core.errors import CatalogError
from catalog.models.filter import PropertyFilter
from catalog.services.aggregator import Aggregator
from catalog.services.catalog_source import CatalogSourceAdapter


async def preview(args) -> int:
    property_filter = PropertyFilter(
        category=args.category,
        transaction_type=args.transaction,
        search=args.search,
        limit=args.limit,
    )

    async with httpx.AsyncClient(follow_redirects=True) as client:
        adapter = CatalogSourceAdapter(client, base_url=args.url)
        if not adapter.configured:
            print("Error: no Catalog Source URL. Set CATALOG_SOURCE_URL or pass --url")
            return 1
        result = await Aggregator(adapter).query(property_filter)

    print(f"\n=== {result.total} properties ===")
    if result.partial:
        for category, error in result.failed_categories.items():
            print(f"  ! {category} omitted: {error}")
    for prop in result.items:
        flags = "*" if prop.featured else " "
        print(f"  {flags} [{prop.category.value}:{prop.id}] {prop.title} | {prop.location} | "
              f"{prop.price} ({prop.price_type.value}) | {len(prop.media)} media")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Preview the aggregated property catalog")
    parser.add_argument("--category", type=str, default="ALL", help="ALL, residential, commercial or bungalow")
    parser.add_argument("--transaction", type=str, default="ALL", help="ALL, buy or lease")
    parser.add_argument("--search", type=str, default="", help="Free-text search")
    parser.add_argument("--limit", type=int, default=20, help="Properties to show")
    parser.add_argument("--url", type=str, default=settings.CATALOG_SOURCE_URL,
                       help="Catalog Source URL")

    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(preview(args)))
    except CatalogError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
