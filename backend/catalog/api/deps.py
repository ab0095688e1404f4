from fastapi import Request

from catalog.services.catalog_service import CatalogService


def get_catalog_service(request: Request) -> CatalogService:
    """Dependency returning the process-wide catalog service."""
    return request.app.state.catalog
