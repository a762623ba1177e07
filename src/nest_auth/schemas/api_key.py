"""Pydantic schemas for API key management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ApiKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    client_name: str = Field(..., min_length=1, max_length=255)
    expires_at: datetime | None = None
    permissions: list[str] = Field(default_factory=list)


class ApiKeyResponse(BaseModel):
    """API key metadata; the stored hash is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    client_name: str
    permissions: list[str]
    is_active: bool
    expires_at: datetime | None
    last_used_at: datetime | None
    user_id: UUID
    created_at: datetime
    updated_at: datetime


class ApiKeyWithSecret(ApiKeyResponse):
    """Returned once, on create/regenerate; the secret is not retrievable later."""

    api_key: str = Field(..., description="Plaintext key, shown only once")


class ServiceIdentity(BaseModel):
    """Resolved caller of a service-to-service request."""

    api_key_id: UUID
    name: str
    client_name: str
    permissions: list[str]
