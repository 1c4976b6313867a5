"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures logging, storage and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryStore
from src.adapters.repository.postgres import run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Deposit RSVP API v1 - Create events, register with a deposit hold, check in",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Configures logging from settings
    - Creates the storage backend (database pool + migrations, or in-memory)
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("Starting application...")

    pool: ConnectionPool | None = None
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory storage; data is lost on restart")
        app.state.store = InMemoryStore()
    else:
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)

        # Store pool in app state for dependency injection
        app.state.pool = pool

    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; deposit authorizations will fail")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="depositrsvp",
    description="Deposit RSVP API - Event registrations backed by a refundable deposit hold",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with storage validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    if getattr(request.app.state, "store", None) is not None:
        return {"status": "healthy", "storage": "memory"}

    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy", "storage": "postgres"}
