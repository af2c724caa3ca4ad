"""API key request and response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from weather_api.config import settings
from weather_api.models.credential import Role


class ApiKeyResponse(BaseModel):
    """A newly issued API key."""

    model_config = {"from_attributes": True}

    api_key: str = Field(..., description="The key to present in X-API-Key")
    role: Role
    access_created_date: datetime


class IssueApiKeysRequest(BaseModel):
    """Request for several keys at once."""

    count: int = Field(
        default=settings.credential_batch_default,
        ge=1,
        le=settings.credential_batch_max,
        description="Number of keys to issue",
    )


class IssueApiKeysResponse(BaseModel):
    message: str
    api_keys: list[ApiKeyResponse]


class RevokeApiKeysRequest(BaseModel):
    api_keys_to_delete: list[Any] = Field(..., description="Keys to revoke")


class UpdateRolesRequest(BaseModel):
    api_keys_to_update: list[Any] = Field(..., description="Keys to reassign")


class BatchResponse(BaseModel):
    """Result of a successful batch operation."""

    message: str
    applied_count: int = Field(..., description="Entities changed")
    verified_count: int = Field(..., description="Entities verified to exist")
