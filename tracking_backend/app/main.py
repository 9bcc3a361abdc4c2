"""
FastAPI Application Entry Point.

This is the main application file for the Bus Tracking Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from tracking_backend.app.core.config import settings
from tracking_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from tracking_backend.app.api.v1.router import router as api_v1_router
from tracking_backend.app.db.session import engine, Base
from tracking_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from tracking_backend.app.models.vehicle import Vehicle  # before Trip for FK
from tracking_backend.app.models.trip import Trip
from tracking_backend.app.models.trip_position import TripPosition
from tracking_backend.app.models.city_coordinate import CityCoordinate


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Live GPS tracking and arrival estimates for intercity buses",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """Welcome message and API documentation links."""
    return {
        "message": "Welcome to the Bus Tracking Backend API",
        "docs": "/docs",
        "health": "/health",
    }
