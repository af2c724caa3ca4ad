"""Rate limiting using slowapi.

Guards the open API key issuance endpoints. Limits live in Redis, or in
process memory when testing or when no Redis URL is configured.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from weather_api.config import settings

_storage_uri = (
    "memory://" if settings.testing or not settings.redis_url else settings.redis_url
)


def client_address(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For / X-Real-IP behind a proxy."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(
    key_func=client_address,
    storage_uri=_storage_uri,
    enabled=not settings.testing,
)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Return a 429 JSON response when a limit is exceeded."""
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )
