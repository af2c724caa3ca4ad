"""API key issuance, revocation and role reassignment."""

from collections.abc import Sequence
from typing import Any

from weather_api.core.batch import (
    BatchConsistencyProtocol,
    BatchResult,
    DeleteAll,
    SetRole,
)
from weather_api.core.identifiers import ValidationPolicy
from weather_api.logging_config import get_logger
from weather_api.models.credential import Credential, Role
from weather_api.services.entity_store import CredentialStore

logger = get_logger(__name__)

_ENTITY = "API key"


async def issue_credentials(
    store: CredentialStore,
    count: int,
    role: Role,
) -> list[Credential]:
    """Issue ``count`` new API keys with ``role``.

    Raises:
        ValueError: If count is not positive.
        StoreError: If the insert fails.
    """
    if count < 1:
        raise ValueError("At least one API key must be requested")

    credentials = await store.insert_many(count, role)
    logger.info("API keys issued", count=count, role=role.value)
    return credentials


async def revoke_credentials(
    store: CredentialStore,
    api_keys: Sequence[Any],
) -> BatchResult:
    """Delete every key in ``api_keys``, or none if any is unknown.

    Malformed keys are dropped before verification.
    """
    protocol = BatchConsistencyProtocol(store, _ENTITY)
    return await protocol.apply_batch(api_keys, DeleteAll(), ValidationPolicy.LENIENT)


async def revoke_own_credential(store: CredentialStore, api_key: str) -> BatchResult:
    """Delete the caller's own key."""
    protocol = BatchConsistencyProtocol(store, _ENTITY)
    return await protocol.apply_batch([api_key], DeleteAll(), ValidationPolicy.STRICT)


async def set_credential_roles(
    store: CredentialStore,
    api_keys: Sequence[Any],
    role: Role,
) -> BatchResult:
    """Reassign ``role`` to every key in ``api_keys``.

    Any malformed key rejects the whole request.
    """
    protocol = BatchConsistencyProtocol(store, _ENTITY)
    return await protocol.apply_batch(api_keys, SetRole(role), ValidationPolicy.STRICT)
