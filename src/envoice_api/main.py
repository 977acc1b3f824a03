"""
FastAPI application main module.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

import envoice.logging  # noqa: F401  Ensure logging is configured
from envoice.config import Settings
from envoice.config import settings as pipeline_settings
from envoice.infrastructure import Database, RedisClient
from envoice.orchestrator import SyncOrchestrator
from envoice.scheduler import SyncScheduler
from envoice_api.config.settings import settings
from envoice_api.controllers.health_controller import router as health_router
from envoice_api.controllers.sync_controller import router as sync_router
from envoice_api.middleware import (
    APITokenMiddleware,
    add_metrics_endpoint,
    add_observability_middleware,
)
from envoice_api.models.responses import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: database check, orchestrator wiring and scheduler."""
    logger.info("Starting envoice API...")
    config: Settings = app.state.pipeline_settings

    database: Database = app.state.database
    # A database that cannot be reached is fatal: start-up aborts here
    database.test_connection()
    database.create_tables()

    redis_client: Optional[RedisClient] = None
    if getattr(app.state, "orchestrator", None) is None:
        if config.redis_enabled:
            redis_client = RedisClient(config.redis_url)
            if not await redis_client.ping():
                logger.warning("Redis unreachable, submission guards will fail until it recovers")
        app.state.orchestrator = SyncOrchestrator.from_settings(
            config, database, redis_client
        )

    scheduler = SyncScheduler(app.state.orchestrator, interval=config.sync_interval_seconds)
    app.state.scheduler = scheduler
    if config.sync_enabled:
        scheduler.start()
    else:
        logger.info("Periodic sync disabled")

    logger.info("envoice API started successfully")

    yield

    logger.info("Shutting down envoice API...")
    await scheduler.stop()
    if redis_client is not None:
        await redis_client.close()
    database.dispose()
    logger.info("envoice API shutdown complete")


def create_app(
    database: Optional[Database] = None,
    orchestrator: Optional[SyncOrchestrator] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        database: Reconciliation database (default: built from DATABASE_URL)
        orchestrator: Pre-built orchestrator (default: wired from settings at start-up)
        config: Pipeline settings (default: loaded from the environment)
    """
    config = config or pipeline_settings
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.pipeline_settings = config
    app.state.database = database or Database(config.database_url)
    app.state.orchestrator = orchestrator

    # Add API token middleware first (before observability)
    app.add_middleware(APITokenMiddleware)

    add_observability_middleware(app)
    add_metrics_endpoint(app)

    if settings.is_production():
        app.add_middleware(
            TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts
        )
        logger.info(f"Trusted hosts enabled: {settings.allowed_hosts}")

    app.include_router(health_router)
    app.include_router(sync_router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception in {request.url.path}: {exc}")
        error_response = ErrorResponse(
            error="InternalServerError", message="An unexpected error occurred"
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(mode="json"),
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "envoice_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info",
    )
