from fastapi import APIRouter

from fxconvert.api.routes import conversions, statistics

api_router = APIRouter()

api_router.include_router(conversions.router, prefix="/conversions", tags=["conversions"])
api_router.include_router(statistics.router, prefix="/statistics", tags=["statistics"])
