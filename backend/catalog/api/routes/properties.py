"""
Property catalog API endpoints.

Includes:
- Catalog query (cached, paginated, stale-tolerant)
- Enquiry and property submissions relayed to the Catalog Source
- View/like counters
- Cache stats and reset (admin/debug)
"""
import logging
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from catalog.api.deps import get_catalog_service
from catalog.core.config import settings
from catalog.core.errors import ValidationError
from catalog.models.filter import ALL, PropertyFilter
from catalog.services.catalog_cache import ServedFrom
from catalog.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["properties"])


# =============================================================================
# Request models
# =============================================================================

class EnquiryProperty(BaseModel):
    """The listing an enquiry is about, as the client displays it."""
    model_config = ConfigDict(extra="allow")

    configuration: str = ""
    carpetArea: Optional[float] = None
    builtUpArea: Optional[float] = None
    area: str = ""
    price: str = ""


class EnquiryRequest(BaseModel):
    type: Literal["enquiry"]
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: str = ""
    message: str = ""
    property: EnquiryProperty


class PropertySubmission(BaseModel):
    """A new listing posted by an owner; extra fields pass through."""
    model_config = ConfigDict(extra="allow")

    type: Literal["property"]
    category: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1)


class StatsUpdate(BaseModel):
    propertyId: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    action: Literal["view", "like"]


def _validate(model: type[BaseModel], data: dict) -> BaseModel:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors() if err.get("loc")})
        raise ValidationError(f"Missing or invalid fields: {', '.join(fields)}", fields=fields) from e


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be JSON", fields=["body"]) from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object", fields=["body"])
    return body


def _not_configured() -> JSONResponse:
    logger.warning("Catalog Source URL not configured, rejecting submission")
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "error": "Catalog Source not configured. Set CATALOG_SOURCE_URL.",
        },
    )


# =============================================================================
# Catalog query
# =============================================================================

@router.get("")
async def list_properties(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """
    Query the property catalog.

    - **category**: ALL, residential, commercial or bungalow
    - **transactionType**: ALL, buy or lease
    - **search** / **location**: case-insensitive substring filters
    - **minPrice** / **maxPrice** / **bedrooms**: optional refinements
    - **limit** / **offset**: pagination over the cached result set

    Served from cache within the TTL; if the Catalog Source fails, the last
    good copy is served with a shorter max-age.
    """
    property_filter = PropertyFilter.from_query_params(
        request.query_params,
        default_limit=settings.DEFAULT_PAGE_LIMIT,
        max_limit=settings.MAX_PAGE_LIMIT,
    )
    page = await service.get_page(property_filter)

    body = {
        "success": True,
        "data": [p.model_dump(mode="json", by_alias=True) for p in page.items],
        "total": page.total,
        "category": property_filter.category.value if property_filter.category else ALL,
        "servedFrom": page.served_from.value,
        "pagination": {
            "limit": property_filter.limit,
            "offset": property_filter.offset,
            "hasMore": property_filter.offset + property_filter.limit < page.total,
        },
    }

    headers = {
        "Cache-Control": settings.CACHE_CONTROL_STALE if page.served_from == ServedFrom.STALE
        else settings.CACHE_CONTROL_FRESH,
        "X-Catalog-Served-From": page.served_from.value,
    }
    if page.failed_categories:
        headers["X-Catalog-Partial"] = ",".join(page.failed_categories)

    return JSONResponse(content=body, headers=headers)


# =============================================================================
# Submissions
# =============================================================================

@router.post("")
async def submit(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """
    Submit an enquiry (type "enquiry") or a new property (type "property").

    Both are relayed to the Catalog Source, which appends them to its sheets.
    """
    body = await _json_body(request)
    kind = body.get("type")
    if kind not in ("enquiry", "property"):
        raise ValidationError("Invalid request type", fields=["type"])

    if not service.adapter.configured:
        return _not_configured()

    if kind == "enquiry":
        enquiry = _validate(EnquiryRequest, body)
        await service.submit({
            "type": "enquiry",
            "name": enquiry.name,
            "phone": enquiry.phone,
            "email": enquiry.email,
            "message": enquiry.message,
            "projectConfiguration": enquiry.property.configuration,
            "projectCarpetSize": enquiry.property.carpetArea,
            "projectBuiltUp": enquiry.property.builtUpArea,
            "projectNode": enquiry.property.area,
            "projectPrice": enquiry.property.price,
            "enquiryDate": datetime.now(timezone.utc).isoformat(),
            "source": "Property Portal",
        })
        logger.info(f"Enquiry submitted for {enquiry.property.configuration or 'property'}")
        return {"success": True, "message": "Enquiry submitted successfully"}

    submission = _validate(PropertySubmission, body)
    payload = submission.model_dump()
    payload["category"] = submission.category.upper()
    result = await service.submit(payload)
    logger.info(f"Property submitted: {submission.title}")
    return {
        "success": True,
        "message": "Property submitted successfully",
        "propertyId": result.get("propertyId"),
    }


@router.patch("")
async def update_stats(request: Request, service: CatalogService = Depends(get_catalog_service)):
    """Increment a listing's view or like counter."""
    update = _validate(StatsUpdate, await _json_body(request))

    if not service.adapter.configured:
        return {
            "success": True,
            "message": "Analytics will be tracked once the Catalog Source is configured",
            "newValue": 1,
        }

    result = await service.submit({
        "action": "updateStats",
        "propertyId": update.propertyId,
        "category": update.category.upper(),
        "field": "Views" if update.action == "view" else "Likes",
        "increment": 1,
    })
    return {
        "success": True,
        "message": "Property stats updated successfully",
        "newValue": result.get("newValue"),
    }


# =============================================================================
# Cache management
# =============================================================================

@router.get("/cache/stats")
async def cache_stats(service: CatalogService = Depends(get_catalog_service)):
    """Catalog cache statistics (admin/debug endpoint)."""
    return service.cache.stats()


@router.delete("/cache")
async def clear_cache(service: CatalogService = Depends(get_catalog_service)):
    """Drop every cached catalog entry (admin/debug endpoint)."""
    service.cache.clear()
    return {"message": "Catalog cache cleared"}
