"""Middleware package for the weather API."""

from weather_api.middleware.correlation import (
    CORRELATION_ID_HEADER,
    CorrelationIdMiddleware,
)

__all__ = ["CorrelationIdMiddleware", "CORRELATION_ID_HEADER"]
