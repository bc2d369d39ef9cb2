"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from longform.api.v1.router import api_router
from longform.config import settings
from longform.core.database import close_db, init_db
from longform.core.logging import setup_logging

logger = logging.getLogger(__name__)

JOBS_TAG_DESCRIPTION = """
Jobs are driven pull-style: call `POST /api/v1/jobs/{job_id}/advance` repeatedly
(UI poll loop or cron). Each call performs exactly one step, or one section of
the section step, and returns the job's status, step, cursor and progress.
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()

    logger.info(
        "Starting Longform Pipeline",
        extra={
            "environment": settings.environment,
            "version": settings.app_version,
            "model_reasoning": settings.get_model("reasoning"),
            "model_standard": settings.get_model("standard"),
            "search_enabled": settings.search_enabled,
        },
    )

    if settings.environment == "development":
        await init_db()
        logger.info("Development database initialized")

    yield

    logger.info("Shutting down Longform Pipeline")
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Resumable long-form article generation: a persisted job/step/cursor "
            "pipeline advanced one bounded unit of work per request."
        ),
        openapi_tags=[{"name": "Jobs", "description": JOBS_TAG_DESCRIPTION.strip()}],
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        cast(Any, CORSMiddleware),
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get(
        "/health",
        summary="Health check",
        description="Return service health status and backend version information.",
    )
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()
