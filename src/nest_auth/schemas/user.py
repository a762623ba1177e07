"""Pydantic schemas for users."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from nest_auth.models.user import UserRole


class UserResponse(BaseModel):
    """User data without password or refresh-token hashes."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserUpdate(BaseModel):
    """Admin update of a user; omitted fields are left unchanged."""

    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8)
    role: UserRole | None = None
    is_active: bool | None = None


class DeleteUserResponse(BaseModel):
    success: bool
    message: str
    hard: bool = False
    user: UserResponse | None = None
