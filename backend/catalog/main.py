from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
import logging

import httpx

from catalog.core.config import settings
from catalog.core.errors import CatalogError, UpstreamError, ValidationError
from catalog.api import api_router
from catalog.services.catalog_service import CatalogService


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure redirects use HTTPS when behind a proxy."""
    async def dispatch(self, request: Request, call_next):
        forwarded_proto = request.headers.get("x-forwarded-proto", "http")
        if forwarded_proto == "https":
            request.scope["scheme"] = "https"
        return await call_next(request)

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Apps Script web apps answer through a redirect
    client = httpx.AsyncClient(follow_redirects=True, timeout=settings.CATALOG_SOURCE_TIMEOUT)
    app.state.catalog = CatalogService.create(client)
    logger.info(f"Catalog cache TTL: {settings.CACHE_TTL_SECONDS}s")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await client.aclose()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Property catalog aggregated from the category sheets",
    lifespan=lifespan,
)

app.add_middleware(HTTPSRedirectMiddleware)

cors_origins = list(settings.CORS_ORIGINS)
logger.info(f"CORS origins configured: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": exc.message, "fields": exc.fields},
    )


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"success": False, "error": "Failed to fetch properties", "message": str(exc)},
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    logger.error(f"Catalog error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Failed to process request", "message": str(exc)},
    )


# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy"
    }


@app.get("/health")
def health_check(request: Request):
    """Detailed health check."""
    catalog = getattr(request.app.state, "catalog", None)
    return {
        "status": "healthy",
        "catalog_source": "configured" if catalog and catalog.adapter.configured else "not_configured",
        "cache": catalog.cache.stats() if catalog else None,
        "version": settings.APP_VERSION
    }
