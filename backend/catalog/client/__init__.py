from catalog.client.api import CatalogApiClient, PropertyPage
from catalog.client.coordinator import CoordinatorState, RequestCoordinator

__all__ = ["CatalogApiClient", "PropertyPage", "CoordinatorState", "RequestCoordinator"]
