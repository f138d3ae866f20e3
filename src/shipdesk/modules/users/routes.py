"""User management API routes."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from shipdesk.api.dependencies import DBSession
from shipdesk.core.auth.dependencies import CurrentUser
from shipdesk.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from shipdesk.core.permissions import PermissionChecker, require_permission
from shipdesk.modules.users.schemas import (
    UserCreate,
    UserListResponse,
    UserPermissionsResponse,
    UserResponse,
    UserRoleUpdate,
    UserUpdate,
)
from shipdesk.modules.users.services import UserSvc


router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
)
@require_permission("user_read")
async def list_users(
    service: UserSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    role_id: int | None = None,
) -> UserListResponse:
    """List users, optionally filtered by role."""
    users, total = await service.list_users(page=page, page_size=page_size, role_id=role_id)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
)
@require_permission("user_create")
async def create_user(
    data: UserCreate,
    service: UserSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> UserResponse:
    """Create a user attached to an active role."""
    return UserResponse.model_validate(await service.create_user(data))


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user",
)
@require_permission("user_read")
async def get_user(
    user_id: UUID,
    service: UserSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> UserResponse:
    """Get a user by id."""
    return UserResponse.model_validate(await service.get_user(user_id))


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
)
@require_permission("user_update")
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    service: UserSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> UserResponse:
    """Partially update a user."""
    return UserResponse.model_validate(await service.update_user(user_id, data))


@router.put(
    "/{user_id}/role",
    response_model=UserResponse,
    summary="Change user role",
)
@require_permission("user_update")
async def change_user_role(
    user_id: UUID,
    data: UserRoleUpdate,
    service: UserSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> UserResponse:
    """Move a user to another role."""
    return UserResponse.model_validate(await service.change_role(user_id, data.role_id))


@router.post(
    "/{user_id}/activate",
    response_model=UserResponse,
    summary="Activate user",
)
@require_permission("user_update")
async def activate_user(
    user_id: UUID,
    service: UserSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> UserResponse:
    return UserResponse.model_validate(await service.activate_user(user_id))


@router.post(
    "/{user_id}/deactivate",
    response_model=UserResponse,
    summary="Deactivate user",
)
@require_permission("user_update")
async def deactivate_user(
    user_id: UUID,
    service: UserSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> UserResponse:
    return UserResponse.model_validate(await service.deactivate_user(user_id))


@router.get(
    "/{user_id}/permissions",
    response_model=UserPermissionsResponse,
    summary="Get user permissions",
    description="The full permission set of the user's current role.",
)
@require_permission("user_read")
async def get_user_permissions(
    user_id: UUID,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,
) -> UserPermissionsResponse:
    """Resolve a user's role and its permissions."""
    checker = PermissionChecker(db)
    role = await checker.load_role_for_user(user_id)
    permissions = await checker.load_permissions_for_role(role.id)
    return UserPermissionsResponse(
        user_id=user_id,
        role_id=role.id,
        role_name=role.name,
        permissions=sorted(p.name for p in permissions),
    )
