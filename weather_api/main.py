"""Weather station data-collection API."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from weather_api.config import settings
from weather_api.database import close_database
from weather_api.logging_config import get_logger, setup_logging
from weather_api.middleware import CorrelationIdMiddleware
from weather_api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from weather_api.routers import credentials, health, readings

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Migrations are applied by `alembic upgrade head` before startup
    logger.info("Weather API started")
    yield
    logger.info("Shutting down weather API...")
    await close_database()
    logger.info("Weather API shutdown complete")


app = FastAPI(
    title="Weather API",
    description="Key-gated collection and query of weather station readings",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# CORS also answers the preflight OPTIONS requests for every route
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(credentials.router)
app.include_router(readings.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "Weather API",
        "version": "0.1.0",
        "docs": "/docs",
    }
