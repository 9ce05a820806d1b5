"""Main FastAPI application for the Consultation service.

This module sets up the FastAPI application with all routes, middleware,
exception handlers and configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from consultation_service.api.dependencies import get_repository, get_search_index
from consultation_service.api.errors import register_exception_handlers
from consultation_service.api.logging_config import setup_logging
from consultation_service.api.middleware import setup_middleware
from consultation_service.api.routes import consultations, health
from consultation_service.infrastructure.settings import settings

setup_logging(use_json=settings.json_logs, log_level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"{settings.app_name} API starting up...")
    logger.info(f"Logging level: {settings.log_level}")

    repository = app.dependency_overrides.get(get_repository, get_repository)()
    search_index = app.dependency_overrides.get(get_search_index, get_search_index)()
    for name, init_result in (("database", repository.initialize_schema()), ("search index", search_index.initialize())):
        if not init_result.is_success():
            logger.error(f"Failed to initialize {name}: {init_result.error}")

    yield

    logger.info(f"{settings.app_name} API shutting down...")
    repository.close()
    search_index.close()


app = FastAPI(
    title="Consultation API",
    description="CRUD and search API for consultations",
    version=settings.app_version,
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    openapi_url=f"{settings.api_prefix}/openapi.json",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Location",
        "Link",
        "X-Total-Count",
        "X-Total-Pages",
        f"X-{settings.app_name}-alert",
        f"X-{settings.app_name}-error",
        f"X-{settings.app_name}-params",
    ],
)

setup_middleware(app)
register_exception_handlers(app)

app.include_router(health.router)
app.include_router(consultations.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "consultation_service.api.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level="info"
    )
