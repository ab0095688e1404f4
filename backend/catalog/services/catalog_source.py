"""
Catalog Source adapter.

The catalog lives in one spreadsheet per category, exposed by an Apps Script
web app. A GET per category returns {"data": [row, ...], "total": n} with
positional rows; this adapter normalizes them into Property records.

Failures raise UpstreamError instead of returning an empty list, so callers
can tell "no listings" from "source down". A missing sheet (404 or a body
without data) is not a failure.
"""

import logging
from datetime import date
from typing import Callable, Optional

import httpx

from catalog.core.config import settings
from catalog.core.errors import UpstreamError, ValidationError
from catalog.models.filter import PropertyFilter
from catalog.models.property import Category, Property
from catalog.services.normalizer import CATEGORY_LAYOUTS, CategoryLayout, normalize_rows

logger = logging.getLogger(__name__)


class CatalogSourceAdapter:
    """Fetches and normalizes one category sheet at a time."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        layouts: Optional[dict[Category, CategoryLayout]] = None,
        timeout: Optional[float] = None,
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self.base_url = base_url if base_url is not None else settings.CATALOG_SOURCE_URL
        self.layouts = layouts if layouts is not None else CATEGORY_LAYOUTS
        self.timeout = timeout if timeout is not None else settings.CATALOG_SOURCE_TIMEOUT
        self._today = today

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    @property
    def categories(self) -> list[Category]:
        return list(self.layouts)

    async def fetch(self, category: Category, property_filter: Optional[PropertyFilter] = None) -> list[Property]:
        """
        Normalized properties for one category.

        The transaction-type filter is applied here; the source cannot
        pre-filter.
        """
        layout = self.layouts.get(category)
        if layout is None:
            raise ValidationError(f"Unknown category: {category}", fields=["category"])

        if not self.configured:
            logger.warning("CATALOG_SOURCE_URL not configured, returning no properties")
            return []

        rows = await self._fetch_rows(layout)
        malformed = sum(1 for row in rows if not isinstance(row, (list, tuple)))
        if malformed:
            logger.warning(f"Catalog Source: skipped {malformed} {category.value} rows that are not lists")
        properties = normalize_rows(rows, layout, fetched_on=self._today())

        if property_filter is not None and property_filter.transaction_type is not None:
            properties = [p for p in properties if p.transaction_type == property_filter.transaction_type]

        logger.info(f"Catalog Source: {len(properties)} {category.value} properties from {len(rows)} rows")
        return properties

    async def _fetch_rows(self, layout: CategoryLayout) -> list:
        category = layout.category.value
        params = {
            "category": category.upper(),
            "sheet": layout.sheet_name,
            "columns": layout.width,
        }

        try:
            response = await self.client.get(self.base_url, params=params, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Catalog Source unreachable: {e}", category=category) from e

        if response.status_code == 404:
            logger.info(f"Sheet '{layout.sheet_name}' not found, treating {category} as empty")
            return []
        if response.is_error:
            raise UpstreamError(f"Catalog Source returned HTTP {response.status_code}", category=category)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError("Catalog Source returned a non-JSON body", category=category) from e

        if not isinstance(body, dict):
            raise UpstreamError("Catalog Source returned an unexpected body", category=category)
        if str(body.get("status", "")).lower() == "error":
            raise UpstreamError(body.get("message") or "Catalog Source reported an error", category=category)

        rows = body.get("data")
        if rows is None:
            logger.info(f"No data for sheet '{layout.sheet_name}', treating {category} as empty")
            return []
        if not isinstance(rows, list):
            raise UpstreamError("Catalog Source 'data' is not a list", category=category)
        return rows

    async def submit(self, payload: dict) -> dict:
        """
        POST a command (enquiry, property submission, stats update) to the source.
        """
        if not self.configured:
            raise UpstreamError("Catalog Source not configured")

        try:
            response = await self.client.post(self.base_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamError(f"Catalog Source rejected {payload.get('type') or payload.get('action')}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            return {}
        if isinstance(body, dict) and str(body.get("status", "")).lower() == "error":
            raise UpstreamError(body.get("message") or "Catalog Source reported an error")
        return body if isinstance(body, dict) else {}
