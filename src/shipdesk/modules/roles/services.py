"""Role-based access control services.

``RoleService`` owns the role lifecycle and the role/permission assignment
set. ``PermissionService`` manages the permission catalogue. Every mutating
call validates everything before writing, so a rejected call leaves no rows
behind; the request session commits or rolls back as a whole.
"""

from collections.abc import Iterable
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends
from sqlalchemy.exc import IntegrityError

from shipdesk.api.dependencies import DBSession
from shipdesk.core.errors import ConflictError, NotFoundError, ValidationError
from shipdesk.core.permissions.checker import (
    PermissionChecker,
    PermissionInfo,
    default_permission_name,
)
from shipdesk.core.permissions.models import Permission, Role
from shipdesk.modules.roles.repos import PermissionRepository, RoleRepository
from shipdesk.modules.roles.schemas import PermissionCreate, RoleCreate, RoleUpdate
from shipdesk.modules.users.repos import UserRepository


logger = structlog.get_logger()

NULLABLE_ROLE_FIELDS = frozenset({"description"})


def _name_taken(name: str) -> ConflictError:
    return ConflictError(
        "Role name already exists",
        error_code="role_exists",
        details={"name": name},
    )


class RoleService:
    """Service for role lifecycle and permission assignment."""

    def __init__(self, db: DBSession) -> None:
        self.db = db
        self.repo = RoleRepository(db)
        self.permission_repo = PermissionRepository(db)
        self.user_repo = UserRepository(db)
        self.checker = PermissionChecker(db)

    async def _get_role_or_404(self, role_id: int) -> Role:
        role = await self.repo.get_by_id(role_id)
        if not role:
            raise NotFoundError(
                "Role not found",
                resource="role",
                resource_id=str(role_id),
            )
        return role

    async def _ensure_name_free(self, name: str, exclude_id: int | None = None) -> None:
        existing = await self.repo.get_by_name(name)
        if existing and existing.id != exclude_id:
            raise _name_taken(name)

    # ============================================================
    # Role lifecycle
    # ============================================================

    async def create_role(self, data: RoleCreate) -> Role:
        """Create a role with an empty permission set.

        Args:
            data: Role name, description and initial status

        Returns:
            The created role

        Raises:
            ConflictError: If a role with the same name exists
        """
        await self._ensure_name_free(data.name)
        try:
            role = await self.repo.create(
                Role(name=data.name, description=data.description, is_active=data.is_active)
            )
        except IntegrityError as e:
            # Another request took the name between the check and the insert
            raise _name_taken(data.name) from e
        logger.info("role_created", role_id=role.id, name=role.name)
        return role

    async def get_role(self, role_id: int) -> tuple[Role, list[Permission]]:
        """Get a role with its assigned permissions.

        Raises:
            NotFoundError: If role not found
        """
        role = await self._get_role_or_404(role_id)
        return role, await self.get_role_permissions(role_id)

    async def get_role_permissions(self, role_id: int) -> list[Permission]:
        """Get the permission rows assigned to a role, ordered by id.

        Raises:
            NotFoundError: If role not found
        """
        await self._get_role_or_404(role_id)
        return await self.permission_repo.list_for_role(role_id)

    async def list_roles(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[Role], int]:
        """List roles with pagination, search and status filter."""
        return await self.repo.list_all(
            page=page, page_size=page_size, search=search, is_active=is_active
        )

    async def list_active_roles(self) -> list[Role]:
        return await self.repo.list_active()

    async def update_role(self, role_id: int, data: RoleUpdate) -> Role:
        """Apply a partial update to a role.

        Raises:
            NotFoundError: If role not found
            ConflictError: If renaming onto another role's name
        """
        role = await self._get_role_or_404(role_id)
        # name and is_active are NOT NULL; an explicit null leaves them as they are
        update_data = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_ROLE_FIELDS
        }

        if "name" in update_data and update_data["name"] != role.name:
            await self._ensure_name_free(update_data["name"], exclude_id=role.id)

        for field, value in update_data.items():
            setattr(role, field, value)

        try:
            role = await self.repo.update(role)
        except IntegrityError as e:
            raise _name_taken(update_data["name"]) from e
        logger.info("role_updated", role_id=role.id, fields=sorted(update_data))
        return role

    async def toggle_role_status(self, role_id: int) -> Role:
        """Flip a role between active and inactive.

        Raises:
            NotFoundError: If role not found
        """
        role = await self._get_role_or_404(role_id)
        role.is_active = not role.is_active
        role = await self.repo.update(role)
        logger.info("role_status_toggled", role_id=role.id, is_active=role.is_active)
        return role

    async def delete_role(self, role_id: int) -> None:
        """Delete a role that no user references.

        Raises:
            NotFoundError: If role not found
            ConflictError: If any user still references the role
        """
        role = await self._get_role_or_404(role_id)

        user_count = await self.user_repo.count_by_role(role_id)
        if user_count:
            raise ConflictError(
                "Cannot delete role that has assigned users",
                error_code="role_has_users",
                details={"role_id": role_id, "user_count": user_count},
            )

        try:
            await self.repo.delete(role)
        except IntegrityError as e:
            # A user was given the role after the count; the RESTRICT key refused
            raise ConflictError(
                "Cannot delete role that has assigned users",
                error_code="role_has_users",
                details={"role_id": role_id},
            ) from e
        logger.info("role_deleted", role_id=role_id)

    # ============================================================
    # Permission assignment
    # ============================================================

    async def assign_permissions(self, role_id: int, permission_ids: Iterable[int]) -> None:
        """Add permissions to a role.

        All ids are checked before anything is written; already assigned
        ids are skipped.

        Raises:
            NotFoundError: If role not found
            ValidationError: If any id matches no permission
        """
        await self._get_role_or_404(role_id)
        requested = set(permission_ids)

        unknown = requested - await self.permission_repo.get_existing_ids(requested)
        if unknown:
            raise ValidationError(
                "Unknown permission ids",
                errors=[
                    {"field": "permission_ids", "message": f"Permission {pid} does not exist"}
                    for pid in sorted(unknown)
                ],
                details={"invalid_ids": sorted(unknown)},
            )

        added = await self.repo.add_permissions(role_id, requested)
        logger.info(
            "permissions_assigned",
            role_id=role_id,
            requested=len(requested),
            added=len(added),
        )

    async def remove_permissions(self, role_id: int, permission_ids: Iterable[int]) -> None:
        """Revoke permissions from a role; ids not assigned are ignored.

        Raises:
            NotFoundError: If role not found
        """
        await self._get_role_or_404(role_id)
        removed = await self.repo.remove_permissions(role_id, permission_ids)
        logger.info("permissions_removed", role_id=role_id, removed=removed)

    async def get_effective_permissions(self, user_id: UUID) -> frozenset[PermissionInfo]:
        """Exactly the permission set of the user's current role.

        Raises:
            NotFoundError: If user not found
        """
        return await self.checker.get_effective_permissions(user_id)


class PermissionService:
    """Service for the permission catalogue."""

    def __init__(self, db: DBSession) -> None:
        self.db = db
        self.repo = PermissionRepository(db)

    async def create_permission(self, data: PermissionCreate) -> Permission:
        """Add a permission to the catalogue.

        Raises:
            ConflictError: If the name is already taken
        """
        name = data.name or default_permission_name(data.resource, data.action, data.scope)
        conflict = ConflictError(
            "Permission name already exists",
            error_code="permission_exists",
            details={"name": name},
        )
        if await self.repo.get_by_name(name):
            raise conflict

        try:
            permission = await self.repo.create(
                Permission(
                    name=name,
                    description=data.description,
                    resource=data.resource,
                    action=data.action,
                    scope=data.scope,
                )
            )
        except IntegrityError as e:
            raise conflict from e
        logger.info("permission_created", permission_id=permission.id, name=name)
        return permission

    async def list_permissions(self, active_only: bool = False) -> list[Permission]:
        return await self.repo.list_all(active_only=active_only)

    async def set_permission_active(self, permission_id: int, is_active: bool) -> Permission:
        """Activate or soft-deactivate a permission.

        Raises:
            NotFoundError: If permission not found
        """
        permission = await self.repo.get_by_id(permission_id)
        if not permission:
            raise NotFoundError(
                "Permission not found",
                resource="permission",
                resource_id=str(permission_id),
            )
        permission.is_active = is_active
        permission = await self.repo.update(permission)
        logger.info(
            "permission_status_changed",
            permission_id=permission.id,
            is_active=is_active,
        )
        return permission


# Type aliases for dependency injection
RoleSvc = Annotated[RoleService, Depends(RoleService)]
PermissionSvc = Annotated[PermissionService, Depends(PermissionService)]
