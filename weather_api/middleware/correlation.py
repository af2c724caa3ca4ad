"""Correlation ID middleware.

Pure ASGI middleware (no BaseHTTPMiddleware) that tags every HTTP request
with a correlation ID: taken from the ``X-Correlation-ID`` request header
when present, generated otherwise. The ID is placed in the logging context
for the duration of the request and echoed on the response.
"""

import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from weather_api.logging_config import api_key_prefix_ctx, correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
_HEADER_KEY = CORRELATION_ID_HEADER.lower().encode()


def _incoming_correlation_id(scope: Scope) -> str | None:
    for name, value in scope.get("headers", []):
        if name == _HEADER_KEY and value:
            return value.decode("latin-1")
    return None


class CorrelationIdMiddleware:
    """Attach a correlation ID and log request start/finish."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = _incoming_correlation_id(scope) or str(uuid.uuid4())
        correlation_token = correlation_id_ctx.set(correlation_id)
        key_token = api_key_prefix_ctx.set(None)

        method = scope.get("method", "")
        path = scope.get("path", "")
        status_code: int | None = None
        started = time.perf_counter()

        async def send_with_header(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = list(message.get("headers", []))
                headers.append((_HEADER_KEY, correlation_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        except Exception:
            logger.exception(
                "Request failed",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        else:
            logger.info(
                "Request completed",
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        finally:
            api_key_prefix_ctx.reset(key_token)
            correlation_id_ctx.reset(correlation_token)
