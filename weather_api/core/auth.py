"""FastAPI dependencies for key-based access control.

Routes declare the roles they accept with ``RoleChecker``; the API key is
read from the ``X-API-Key`` header and checked by the AccessGate. Gate
decisions and batch outcomes are turned into HTTP errors here and nowhere
else, so every route reports the same failure the same way.
"""

from collections.abc import Iterable
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from weather_api.core.access_gate import AccessDecision, AccessGate
from weather_api.core.batch import BatchOutcome, BatchResult
from weather_api.database import get_db
from weather_api.logging_config import api_key_prefix_ctx, get_logger, redact_api_key
from weather_api.models.credential import ALL_ROLES, Role
from weather_api.services.entity_store import CredentialStore, ReadingStore

logger = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"

DECISION_ERRORS: dict[AccessDecision, tuple[int, str]] = {
    AccessDecision.UNAUTHENTICATED: (
        status.HTTP_401_UNAUTHORIZED,
        "Unauthorised - API key is invalid or missing.",
    ),
    AccessDecision.NOT_FOUND: (
        status.HTTP_404_NOT_FOUND,
        "Not found - API key not found.",
    ),
    AccessDecision.FORBIDDEN: (
        status.HTTP_403_FORBIDDEN,
        "Forbidden - API key has insufficient privilege.",
    ),
    AccessDecision.STORE_ERROR: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Database error - API key could not be verified.",
    ),
}

BATCH_ERROR_STATUS: dict[BatchOutcome, int] = {
    BatchOutcome.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    BatchOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    BatchOutcome.PARTIAL_EFFECT: status.HTTP_409_CONFLICT,
    BatchOutcome.STORE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_decision(decision: AccessDecision) -> None:
    """Raise the HTTP error for a non-ALLOW decision."""
    if decision is AccessDecision.ALLOW:
        return
    status_code, detail = DECISION_ERRORS[decision]
    raise HTTPException(status_code=status_code, detail=detail)


def raise_for_batch(result: BatchResult) -> None:
    """Raise the HTTP error for a batch that did not complete cleanly."""
    if result.ok:
        return
    raise HTTPException(
        status_code=BATCH_ERROR_STATUS[result.outcome],
        detail={
            "message": result.detail,
            "outcome": result.outcome.value,
            "applied_count": result.applied_count,
            "verified_count": result.verified_count,
        },
    )


def get_credential_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    """FastAPI dependency for the credential store."""
    return CredentialStore(db)


def get_reading_store(db: AsyncSession = Depends(get_db)) -> ReadingStore:
    """FastAPI dependency for the reading store."""
    return ReadingStore(db)


class RoleChecker:
    """Dependency that lets a request through only for the allowed roles.

    Usage:
        @router.post("/add_reading")
        async def add_reading_endpoint(api_key: StationKey, ...):
            ...

    The dependency returns the normalized API key on success.
    """

    def __init__(self, allowed_roles: Iterable[Role]):
        self.allowed_roles = frozenset(allowed_roles)
        if not self.allowed_roles:
            raise ValueError("RoleChecker needs at least one role")

    async def __call__(
        self,
        request: Request,
        store: Annotated[CredentialStore, Depends(get_credential_store)],
        api_key: Annotated[str | None, Header(alias=API_KEY_HEADER)] = None,
    ) -> str:
        api_key_prefix_ctx.set(redact_api_key(api_key))

        decision = await AccessGate(store).authorize(api_key, self.allowed_roles)
        if decision is not AccessDecision.ALLOW:
            client_ip = request.client.host if request.client else "unknown"
            logger.warning(
                "Access denied",
                decision=decision.value,
                required_roles=sorted(r.value for r in self.allowed_roles),
                path=request.url.path,
                method=request.method,
                client_ip=client_ip,
            )
            raise_for_decision(decision)

        return api_key.lower()


# Type aliases for route signatures
AnyKey = Annotated[str, Depends(RoleChecker(ALL_ROLES))]
StationKey = Annotated[str, Depends(RoleChecker([Role.STATION, Role.ADMIN]))]
AdminKey = Annotated[str, Depends(RoleChecker([Role.ADMIN]))]
