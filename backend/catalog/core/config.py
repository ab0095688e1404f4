from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Meraki Property Catalog"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Catalog Source (Apps Script web app fronting the category sheets)
    CATALOG_SOURCE_URL: Optional[str] = None
    CATALOG_SOURCE_TIMEOUT: float = 15.0

    # Cache
    CACHE_TTL_SECONDS: int = 300  # 5 minutes
    CACHE_SINGLE_FLIGHT: bool = True
    CACHE_MAX_ENTRIES: int = 256  # 0 disables the bound
    CACHE_CONTROL_FRESH: str = "public, max-age=60, s-maxage=300, stale-while-revalidate=600"
    CACHE_CONTROL_STALE: str = "public, max-age=10, s-maxage=30, stale-while-revalidate=60"

    # Pagination
    DEFAULT_PAGE_LIMIT: int = 50
    MAX_PAGE_LIMIT: int = 200

    # Normalization
    FEATURED_PER_CATEGORY: int = 3  # first N rows of each sheet are featured
    DEFAULT_REGION: str = "Navi Mumbai"

    # Listing contact shown on every property
    CONTACT_NAME: str = "Meraki Square Foots"
    CONTACT_PHONE: str = "+91 98765 43210"
    CONTACT_EMAIL: str = "info@merakisquarefoots.com"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
