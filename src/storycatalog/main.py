"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from storycatalog.api.v1.router import router as api_router
from storycatalog.config import get_settings
from storycatalog.domain.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StorageUnavailableError,
)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    from storycatalog.infrastructure.database import engine

    logger.info("Starting story catalog...")
    logger.info(f"Environment: {settings.environment}")

    yield

    await engine.dispose()
    logger.info("Shutting down story catalog...")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"detail": message}, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Map catalog and storage errors onto HTTP status codes."""

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(InvalidInputError)
    async def invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(ConflictError)
    @app.exception_handler(IntegrityError)
    async def conflict(request: Request, exc: Exception) -> JSONResponse:
        logger.warning(f"Constraint violation on {request.url.path}: {exc}")
        return _error(409, "Conflicting update, please retry")

    @app.exception_handler(StorageUnavailableError)
    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    async def storage_unavailable(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Storage unavailable on {request.url.path}: {exc}")
        return _error(503, "Storage temporarily unavailable")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    docs_kwargs = {}
    if settings.is_production:
        docs_kwargs = {"docs_url": None, "redoc_url": None, "openapi_url": None}

    app = FastAPI(
        title="Story Catalog",
        description="Serialized story catalog with search and star ratings",
        version="0.1.0",
        lifespan=lifespan,
        **docs_kwargs,
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Lightweight health check with DB connectivity test."""
        from storycatalog.infrastructure.database import async_session_factory

        try:
            async with async_session_factory() as session:
                await session.execute(text("SELECT 1"))
            return JSONResponse({"status": "healthy", "database": "connected"})
        except Exception:
            logger.exception("Health check failed")
            return JSONResponse(
                {"status": "unhealthy", "database": "disconnected"},
                status_code=503,
            )

    return app


# Create app instance
app = create_app()
