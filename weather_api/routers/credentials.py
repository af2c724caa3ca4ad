"""API key endpoints.

Issuing keys is open (new keys get the default role); revoking other keys
and changing roles is restricted to admin keys. Bulk operations go through
the batch protocol, so a request naming any unknown key changes nothing.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from weather_api.config import settings
from weather_api.core.auth import (
    AdminKey,
    AnyKey,
    get_credential_store,
    raise_for_batch,
)
from weather_api.core.exceptions import StoreError
from weather_api.middleware.rate_limit import limiter
from weather_api.models.credential import Credential, Role
from weather_api.schemas.credential import (
    ApiKeyResponse,
    BatchResponse,
    IssueApiKeysRequest,
    IssueApiKeysResponse,
    RevokeApiKeysRequest,
    UpdateRolesRequest,
)
from weather_api.services.credential_service import (
    issue_credentials,
    revoke_credentials,
    revoke_own_credential,
    set_credential_roles,
)
from weather_api.services.entity_store import CredentialStore

router = APIRouter(tags=["api-keys"])

Store = Annotated[CredentialStore, Depends(get_credential_store)]


def _to_response(credential: Credential) -> ApiKeyResponse:
    return ApiKeyResponse(
        api_key=credential.id,
        role=credential.role,
        access_created_date=credential.created_at,
    )


async def _issue(store: CredentialStore, count: int) -> list[Credential]:
    try:
        return await issue_credentials(store, count, Role(settings.default_role))
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create API key(s).",
        )


@router.post("/request_api_key", response_model=ApiKeyResponse)
@limiter.limit("10/minute")
async def request_api_key_endpoint(request: Request, store: Store) -> ApiKeyResponse:
    """Issue one API key with the default role."""
    credentials = await _issue(store, 1)
    return _to_response(credentials[0])


@router.post("/request_api_keys", response_model=IssueApiKeysResponse)
@limiter.limit("5/minute")
async def request_api_keys_endpoint(
    request: Request,
    store: Store,
    body: IssueApiKeysRequest | None = None,
) -> IssueApiKeysResponse:
    """Issue several API keys in one insert."""
    count = body.count if body else settings.credential_batch_default
    credentials = await _issue(store, count)
    return IssueApiKeysResponse(
        message="API keys created successfully.",
        api_keys=[_to_response(c) for c in credentials],
    )


@router.delete("/delete_api_key", response_model=BatchResponse)
async def delete_api_key_endpoint(api_key: AnyKey, store: Store) -> BatchResponse:
    """Revoke the presented API key itself."""
    result = await revoke_own_credential(store, api_key)
    raise_for_batch(result)
    return BatchResponse(
        message="API key successfully deleted.",
        applied_count=result.applied_count,
        verified_count=result.verified_count,
    )


@router.delete("/delete_api_keys", response_model=BatchResponse)
async def delete_api_keys_endpoint(
    body: RevokeApiKeysRequest,
    _api_key: AdminKey,
    store: Store,
) -> BatchResponse:
    """Revoke every listed key, or none of them if any is unknown."""
    result = await revoke_credentials(store, body.api_keys_to_delete)
    raise_for_batch(result)
    return BatchResponse(
        message="API key(s) successfully deleted.",
        applied_count=result.applied_count,
        verified_count=result.verified_count,
    )


@router.patch("/set_api_keys_to_{role}", response_model=BatchResponse)
async def set_api_keys_role_endpoint(
    role: Role,
    body: UpdateRolesRequest,
    _api_key: AdminKey,
    store: Store,
) -> BatchResponse:
    """Reassign every listed key to ``role``, or none of them."""
    result = await set_credential_roles(store, body.api_keys_to_update, role)
    raise_for_batch(result)
    return BatchResponse(
        message=f"Role field(s) successfully updated to {role.value}.",
        applied_count=result.applied_count,
        verified_count=result.verified_count,
    )
