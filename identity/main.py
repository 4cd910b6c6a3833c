"""FastAPI application entrypoint: logging, CORS and the versioned API router."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from identity.api.v1 import router as v1_router
from identity.core.config import Settings, settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")


def create_app(app_settings: Settings) -> FastAPI:
    """Build the API. Cross-origin requests are only open in dev."""
    application = FastAPI(
        title="Identity API",
        version="0.1.0",
        docs_url="/docs" if app_settings.APP_ENV == "dev" else None,
        redoc_url="/redoc" if app_settings.APP_ENV == "dev" else None,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if app_settings.APP_ENV == "dev" else [],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    application.include_router(v1_router, prefix=app_settings.API_V1_PREFIX)

    @application.get("/", include_in_schema=False)
    def root() -> dict[str, str]:
        return {"message": "Identity API"}

    return application


configure_logging(settings.LOG_LEVEL)
app = create_app(settings)
