"""
HTTP client for the catalog query endpoint.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from catalog.core.errors import CatalogClientError
from catalog.models.filter import PropertyFilter
from catalog.models.property import Property

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertyPage:
    """One page of the query endpoint's response."""
    items: list[Property]
    total: int
    has_more: bool
    served_from: Optional[str] = None


class CatalogApiClient:
    """Calls GET /properties and parses the response envelope."""

    def __init__(self, client: httpx.AsyncClient, base_path: str = "/api/v1"):
        self.client = client
        self.base_path = base_path.rstrip("/")

    async def fetch_page(self, property_filter: PropertyFilter) -> PropertyPage:
        url = f"{self.base_path}/properties"
        try:
            response = await self.client.get(url, params=property_filter.to_query_params())
        except httpx.HTTPError as e:
            raise CatalogClientError(f"Failed to fetch properties: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise CatalogClientError(f"Failed to fetch properties: HTTP {response.status_code}") from e

        if response.is_error or not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise CatalogClientError(error or f"Failed to fetch properties: HTTP {response.status_code}")

        items = [Property.model_validate(item) for item in body.get("data") or []]
        pagination = body.get("pagination") or {}
        return PropertyPage(
            items=items,
            total=int(body.get("total") or 0),
            has_more=bool(pagination.get("hasMore")),
            served_from=body.get("servedFrom"),
        )
