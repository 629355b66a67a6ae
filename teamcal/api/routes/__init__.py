from fastapi import APIRouter

from teamcal.api.routes import (
    effort,
    entries,
)


api_router = APIRouter()
api_router.include_router(entries.router, prefix="/entries", tags=["entries"])
api_router.include_router(effort.router, prefix="/effort", tags=["effort"])
