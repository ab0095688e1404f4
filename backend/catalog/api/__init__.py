from fastapi import APIRouter
from catalog.api.routes import properties

api_router = APIRouter()

api_router.include_router(properties.router)
