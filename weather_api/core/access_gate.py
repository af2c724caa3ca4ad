"""Access gate: resolve an API key to a role and check it against an allow-list.

Checks run in a fixed order. A malformed key never reaches the store, and
an unknown key never reveals anything about roles:

1. format      -> UNAUTHENTICATED
2. resolution  -> NOT_FOUND / STORE_ERROR
3. role        -> FORBIDDEN / ALLOW
"""

import enum
from collections.abc import Iterable
from typing import Protocol

from weather_api.core.exceptions import StoreError
from weather_api.core.identifiers import is_valid_object_id
from weather_api.logging_config import get_logger, redact_api_key
from weather_api.models.credential import Role

logger = get_logger(__name__)


class AccessDecision(str, enum.Enum):
    """Outcome of an authorization check."""

    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"  # key missing or malformed
    NOT_FOUND = "not_found"  # well-formed key with no credential record
    FORBIDDEN = "forbidden"  # known key, role not permitted
    STORE_ERROR = "store_error"  # lookup itself failed


class RoleLookup(Protocol):
    """The part of the credential store the gate needs."""

    async def find_role_by_id(self, credential_id: str) -> Role | None: ...


class AccessGate:
    """Read-only authorization check over an injected credential store."""

    def __init__(self, store: RoleLookup):
        self._store = store

    async def authorize(
        self,
        presented_key: str | None,
        allowed_roles: Iterable[Role],
    ) -> AccessDecision:
        """Decide whether the holder of ``presented_key`` may proceed.

        Args:
            presented_key: Raw key taken from the request; may be absent
                or malformed.
            allowed_roles: Roles permitted for the guarded operation.

        Returns:
            An AccessDecision; store failures are reported as
            ``STORE_ERROR`` rather than raised.
        """
        allowed = frozenset(allowed_roles)
        if not allowed:
            raise ValueError("allowed_roles must not be empty")

        if not is_valid_object_id(presented_key):
            return AccessDecision.UNAUTHENTICATED

        try:
            role = await self._store.find_role_by_id(presented_key.lower())
        except StoreError:
            logger.exception(
                "Credential lookup failed",
                api_key=redact_api_key(presented_key),
            )
            return AccessDecision.STORE_ERROR

        if role is None:
            return AccessDecision.NOT_FOUND
        if Role(role) in allowed:
            return AccessDecision.ALLOW
        return AccessDecision.FORBIDDEN
