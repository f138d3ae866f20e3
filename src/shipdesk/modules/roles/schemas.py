"""Pydantic schemas for roles and permissions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shipdesk.core.constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_PERMISSION_ACTION_LENGTH,
    MAX_PERMISSION_NAME_LENGTH,
    MAX_PERMISSION_RESOURCE_LENGTH,
    MAX_PERMISSION_SCOPE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
)


# ============================================================
# Permission Schemas
# ============================================================


class PermissionCreate(BaseModel):
    """Schema for adding a permission to the catalogue.

    ``name`` defaults to ``resource_action[_scope]``.
    """

    resource: str = Field(..., min_length=1, max_length=MAX_PERMISSION_RESOURCE_LENGTH)
    action: str = Field(..., min_length=1, max_length=MAX_PERMISSION_ACTION_LENGTH)
    scope: str | None = Field(None, min_length=1, max_length=MAX_PERMISSION_SCOPE_LENGTH)
    name: str | None = Field(None, min_length=1, max_length=MAX_PERMISSION_NAME_LENGTH)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)


class PermissionResponse(BaseModel):
    """Schema for permission response data."""

    id: int
    name: str
    description: str | None
    resource: str
    action: str
    scope: str | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PermissionIdsRequest(BaseModel):
    """A set of permission ids to assign to or remove from a role."""

    permission_ids: list[int] = Field(..., min_length=1)

    @field_validator("permission_ids")
    @classmethod
    def dedupe(cls, v: list[int]) -> list[int]:
        """Collapse duplicate ids, keeping first-seen order."""
        return list(dict.fromkeys(v))


# ============================================================
# Role Schemas
# ============================================================


class RoleCreate(BaseModel):
    """Schema for creating a role."""

    name: str = Field(..., min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    is_active: bool = True


class RoleUpdate(BaseModel):
    """Schema for a partial role update; unset fields are unchanged."""

    name: str | None = Field(None, min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    is_active: bool | None = None


class RoleResponse(BaseModel):
    """Schema for role response data."""

    id: int
    name: str
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleDetailResponse(RoleResponse):
    """A role together with its assigned permissions."""

    permissions: list[PermissionResponse]


class RoleListResponse(BaseModel):
    """Schema for listing roles."""

    items: list[RoleResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
