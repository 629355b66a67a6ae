import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from teamcal.api.routes import api_router
from teamcal.core.config import get_settings


def create_app() -> FastAPI:
    settings = get_settings()

    if settings.environment == "development":
        logging.basicConfig(level=logging.INFO)

    application = FastAPI(
        title="teamcal",
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(api_router)
    return application


app = create_app()
