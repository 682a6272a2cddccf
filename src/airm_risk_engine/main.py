"""AIRM risk engine service entry point.

Initializes the FastAPI application with:
- Structured logging (structlog)
- Primary database for risks, AI systems, and score history
- The risk engine router under /api/v1
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from airm_risk_engine import __version__
from airm_risk_engine.api.router import router
from airm_risk_engine.database import close_database, init_database
from airm_risk_engine.observability import configure_logging, get_logger
from airm_risk_engine.settings import get_settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Configures logging and the primary database on startup and disposes
    the database engine on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    settings = get_settings()
    configure_logging(settings.service_name, settings.log_level, json_logs=settings.log_json)

    logger.info("Initializing primary database", service=settings.service_name)
    init_database(settings.database_url, settings.db_pool_size, settings.db_max_overflow)
    app.state.settings = settings

    logger.info(
        "Risk engine startup complete",
        import_chunk_size=settings.import_chunk_size,
        velocity_period_days=settings.velocity_period_days,
    )

    yield

    logger.info("Shutting down risk engine")
    await close_database()
    logger.info("Risk engine shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application.

    Returns:
        The configured application with the router mounted at /api/v1.
    """
    application = FastAPI(title="airm-risk-engine", version=__version__, lifespan=lifespan)
    application.include_router(router, prefix="/api/v1")

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return application


app: FastAPI = create_app()
