"""
Main FastAPI application entry point for the bookstore API.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bookstore.auth.router import router as session_router
from bookstore.commerce.router import router as subscription_router
from bookstore.db import create_all_tables_async, dispose_engine
from bookstore.exceptions import BookstoreError
from bookstore.logging import setup_logging
from bookstore.redis_client import init_redis, redis_manager, shutdown_redis
from bookstore.settings import settings

logger = structlog.get_logger(__name__)


async def bookstore_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render BookstoreError as a structured JSON response."""
    if not isinstance(exc, BookstoreError):
        raise exc
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, **exc.to_dict())
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle events."""
    setup_logging()
    logger.info(
        "service.startup.begin",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    )

    await init_redis()

    # Development databases are created on the fly; elsewhere alembic owns the schema
    if settings.is_development:
        await create_all_tables_async()
        logger.info("database.tables_created")

    logger.info("service.startup.complete")
    try:
        yield
    finally:
        await shutdown_redis()
        await dispose_engine()
        logger.info("service.shutdown.complete")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Bookstore API",
        description="Sessions, subscription plans and customer subscriptions",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    app.add_exception_handler(BookstoreError, bookstore_error_handler)

    app.include_router(session_router, prefix="/api")
    app.include_router(subscription_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment.value,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get("/health/redis")
    async def redis_health() -> dict[str, Any]:
        """Report Redis connection status."""
        status = await redis_manager.health_check()
        status["timestamp"] = datetime.now(UTC).isoformat()
        return status

    return app


app = create_application()


# For development server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookstore.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.observability.log_level.value.lower(),
    )
