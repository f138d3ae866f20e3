"""Role and permission API routes."""

import math

from fastapi import APIRouter, Query, status

from shipdesk.api.dependencies import DBSession
from shipdesk.core.auth.dependencies import CurrentUser
from shipdesk.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from shipdesk.core.permissions import require_permission
from shipdesk.modules.roles.schemas import (
    PermissionCreate,
    PermissionIdsRequest,
    PermissionResponse,
    RoleCreate,
    RoleDetailResponse,
    RoleListResponse,
    RoleResponse,
    RoleUpdate,
)
from shipdesk.modules.roles.services import PermissionSvc, RoleSvc


router = APIRouter()
roles_router = APIRouter(prefix="/roles", tags=["roles"])
permissions_router = APIRouter(prefix="/permissions", tags=["permissions"])


def _detail(role: object, permissions: list) -> RoleDetailResponse:
    return RoleDetailResponse.model_validate(
        {
            **RoleResponse.model_validate(role).model_dump(),
            "permissions": [PermissionResponse.model_validate(p) for p in permissions],
        }
    )


# ============================================================
# Roles
# ============================================================


@roles_router.get(
    "",
    response_model=RoleListResponse,
    summary="List roles",
    description="Paginated role list with optional name/description search and status filter.",
)
@require_permission("role_read")
async def list_roles(
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: str | None = Query(None, max_length=100),
    is_active: bool | None = None,
) -> RoleListResponse:
    """List roles."""
    roles, total = await service.list_roles(
        page=page, page_size=page_size, search=search, is_active=is_active
    )
    return RoleListResponse(
        items=[RoleResponse.model_validate(r) for r in roles],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@roles_router.get(
    "/active",
    response_model=list[RoleResponse],
    summary="List active roles",
)
async def list_active_roles(
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
) -> list[RoleResponse]:
    """List active roles, e.g. for a role picker."""
    return [RoleResponse.model_validate(r) for r in await service.list_active_roles()]


@roles_router.post(
    "",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create role",
)
@require_permission("role_create")
async def create_role(
    data: RoleCreate,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> RoleResponse:
    """Create a role with no permissions."""
    return RoleResponse.model_validate(await service.create_role(data))


@roles_router.get(
    "/{role_id}",
    response_model=RoleDetailResponse,
    summary="Get role",
)
@require_permission("role_read")
async def get_role(
    role_id: int,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> RoleDetailResponse:
    """Get a role and its permissions."""
    role, permissions = await service.get_role(role_id)
    return _detail(role, permissions)


@roles_router.put(
    "/{role_id}",
    response_model=RoleResponse,
    summary="Update role",
)
@require_permission("role_update")
async def update_role(
    role_id: int,
    data: RoleUpdate,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> RoleResponse:
    """Partially update a role."""
    return RoleResponse.model_validate(await service.update_role(role_id, data))


@roles_router.patch(
    "/{role_id}/toggle-status",
    response_model=RoleResponse,
    summary="Toggle role status",
)
@require_permission("role_update")
async def toggle_role_status(
    role_id: int,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> RoleResponse:
    """Activate an inactive role or deactivate an active one."""
    return RoleResponse.model_validate(await service.toggle_role_status(role_id))


@roles_router.delete(
    "/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete role",
    description="Fails with 409 while any user references the role.",
)
@require_permission("role_delete")
async def delete_role(
    role_id: int,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> None:
    """Delete a role."""
    await service.delete_role(role_id)


@roles_router.get(
    "/{role_id}/permissions",
    response_model=list[PermissionResponse],
    summary="List role permissions",
)
@require_permission("role_read")
async def get_role_permissions(
    role_id: int,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> list[PermissionResponse]:
    """List the permissions assigned to a role."""
    permissions = await service.get_role_permissions(role_id)
    return [PermissionResponse.model_validate(p) for p in permissions]


@roles_router.post(
    "/{role_id}/permissions",
    response_model=RoleDetailResponse,
    summary="Assign permissions",
    description="Adds permissions to the role. Unknown ids reject the whole request.",
)
@require_permission("role_update")
async def assign_permissions(
    role_id: int,
    data: PermissionIdsRequest,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> RoleDetailResponse:
    """Assign permissions to a role."""
    await service.assign_permissions(role_id, data.permission_ids)
    role, permissions = await service.get_role(role_id)
    return _detail(role, permissions)


@roles_router.delete(
    "/{role_id}/permissions",
    response_model=RoleDetailResponse,
    summary="Remove permissions",
)
@require_permission("role_update")
async def remove_permissions(
    role_id: int,
    data: PermissionIdsRequest,
    service: RoleSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> RoleDetailResponse:
    """Remove permissions from a role."""
    await service.remove_permissions(role_id, data.permission_ids)
    role, permissions = await service.get_role(role_id)
    return _detail(role, permissions)


# ============================================================
# Permissions
# ============================================================


@permissions_router.get(
    "",
    response_model=list[PermissionResponse],
    summary="List permissions",
)
@require_permission("permission_read")
async def list_permissions(
    service: PermissionSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
    active_only: bool = False,
) -> list[PermissionResponse]:
    """List the permission catalogue."""
    permissions = await service.list_permissions(active_only=active_only)
    return [PermissionResponse.model_validate(p) for p in permissions]


@permissions_router.post(
    "",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create permission",
)
@require_permission("permission_create")
async def create_permission(
    data: PermissionCreate,
    service: PermissionSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> PermissionResponse:
    """Add a permission to the catalogue."""
    return PermissionResponse.model_validate(await service.create_permission(data))


@permissions_router.post(
    "/{permission_id}/activate",
    response_model=PermissionResponse,
    summary="Activate permission",
)
@require_permission("permission_update")
async def activate_permission(
    permission_id: int,
    service: PermissionSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> PermissionResponse:
    """Activate a permission."""
    return PermissionResponse.model_validate(
        await service.set_permission_active(permission_id, True)
    )


@permissions_router.post(
    "/{permission_id}/deactivate",
    response_model=PermissionResponse,
    summary="Deactivate permission",
    description="Soft-deactivates a permission; it stays assigned but grants nothing.",
)
@require_permission("permission_update")
async def deactivate_permission(
    permission_id: int,
    service: PermissionSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> PermissionResponse:
    """Deactivate a permission."""
    return PermissionResponse.model_validate(
        await service.set_permission_active(permission_id, False)
    )


router.include_router(roles_router)
router.include_router(permissions_router)
