"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from weather_api.database import check_database_connection

router = APIRouter(tags=["health"])


def _probe_response(connected: bool, up: str, down: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK
        if connected
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": up if connected else down,
            "database": "connected" if connected else "disconnected",
        },
    )


@router.get("/health", response_model=None)
async def health_check() -> JSONResponse:
    """Overall health including the document store."""
    return _probe_response(await check_database_connection(), "healthy", "degraded")


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """Liveness: the process is up. Does not touch the store."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=None)
async def readiness_probe() -> JSONResponse:
    """Readiness: the store is reachable, so requests can be served."""
    return _probe_response(await check_database_connection(), "ready", "not_ready")
