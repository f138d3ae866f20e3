"""Pydantic schemas for user operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from shipdesk.core.constants import (
    MAX_COMPANY_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PASSWORD_LENGTH,
    MIN_PASSWORD_LENGTH,
)


# ============================================================
# User Schemas
# ============================================================


class UserBase(BaseModel):
    """Base schema for user data."""

    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    company_name: str | None = Field(None, max_length=MAX_COMPANY_NAME_LENGTH)


class UserCreate(UserBase):
    """Schema for creating a new user.

    ``role_id`` falls back to the configured default role when omitted.
    """

    password: str = Field(
        ..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH
    )
    role_id: int | None = None


class UserUpdate(BaseModel):
    """Schema for a partial user update."""

    email: EmailStr | None = None
    full_name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    company_name: str | None = Field(None, max_length=MAX_COMPANY_NAME_LENGTH)
    password: str | None = Field(
        None, min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH
    )
    email_verified: bool | None = None


class UserRoleUpdate(BaseModel):
    """Schema for moving a user to another role."""

    role_id: int


class UserResponse(UserBase):
    """Schema for user response data."""

    id: UUID
    role_id: int
    is_active: bool
    email_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    """Schema for listing users."""

    items: list[UserResponse]
    total: int
    page: int
    page_size: int


class UserPermissionsResponse(BaseModel):
    """A user's role and the permission names it carries."""

    user_id: UUID
    role_id: int
    role_name: str
    permissions: list[str]


# ============================================================
# Authentication Schemas
# ============================================================


class LoginRequest(BaseModel):
    """Schema for email/password login."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Schema for authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token expiration in seconds")


class RefreshTokenRequest(BaseModel):
    """Schema for refreshing or revoking a refresh token."""

    refresh_token: str = Field(..., min_length=1)


class MeResponse(UserResponse):
    """Current user profile with the permissions granted right now."""

    role_name: str
    permissions: list[str]
