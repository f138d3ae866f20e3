"""Role and permission repositories.

``RolePermission`` rows are only touched through ``add_permissions`` and
``remove_permissions`` below; both are set operations and safe to repeat.
"""

from collections.abc import Iterable
from typing import Annotated

from fastapi import Depends
from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite

from shipdesk.api.dependencies import DBSession
from shipdesk.core.permissions.models import Permission, Role, RolePermission


# INSERT constructs that support ON CONFLICT DO NOTHING, by dialect name
CONFLICT_SAFE_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class RoleRepository:
    """Repository for Role and RolePermission database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, role: Role) -> Role:
        """Create a new role.

        Args:
            role: Role instance to create

        Returns:
            The created role with ID populated
        """
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def get_by_id(self, role_id: int) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Role | None:
        """Get a role by exact, case-sensitive name."""
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def list_all(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[Role], int]:
        """List roles with pagination.

        Args:
            page: Page number (1-indexed)
            page_size: Number of items per page
            search: Case-insensitive substring of name or description
            is_active: Only return roles with this status

        Returns:
            Tuple of (roles list, total count)
        """
        filters = []
        if search:
            pattern = f"%{search.lower()}%"
            filters.append(
                or_(
                    func.lower(Role.name).like(pattern),
                    func.lower(Role.description).like(pattern),
                )
            )
        if is_active is not None:
            filters.append(Role.is_active == is_active)

        count_stmt = select(func.count()).select_from(Role).where(*filters)
        total = (await self.session.execute(count_stmt)).scalar_one()

        offset = (page - 1) * page_size
        stmt = (
            select(Role)
            .where(*filters)
            .order_by(Role.created_at.desc(), Role.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def list_active(self) -> list[Role]:
        """List every active role ordered by name."""
        stmt = select(Role).where(Role.is_active.is_(True)).order_by(Role.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, role: Role) -> Role:
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def delete(self, role: Role) -> None:
        """Delete a role; its RolePermission rows go with it."""
        await self.session.execute(
            delete(RolePermission).where(RolePermission.role_id == role.id)
        )
        await self.session.delete(role)
        await self.session.flush()

    # ============================================================
    # Role <-> Permission assignments
    # ============================================================

    async def get_permission_ids(self, role_id: int) -> set[int]:
        """Get the ids of every permission assigned to a role."""
        stmt = select(RolePermission.permission_id).where(
            RolePermission.role_id == role_id
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def add_permissions(self, role_id: int, permission_ids: Iterable[int]) -> set[int]:
        """Assign permissions to a role, skipping pairs that already exist.

        Args:
            role_id: The role's id
            permission_ids: Ids of existing permissions

        Returns:
            The ids that were not assigned when the call started
        """
        ids = set(permission_ids)
        if not ids:
            return set()
        new_ids = ids - await self.get_permission_ids(role_id)

        # Every requested pair is inserted; a concurrent writer may have added
        # some since the read above, and those rows are left as they are.
        insert = CONFLICT_SAFE_INSERTS[self.session.get_bind().dialect.name]
        stmt = (
            insert(RolePermission)
            .values(
                [{"role_id": role_id, "permission_id": pid} for pid in sorted(ids)]
            )
            .on_conflict_do_nothing(index_elements=["role_id", "permission_id"])
        )
        await self.session.execute(stmt)
        return new_ids

    async def remove_permissions(
        self, role_id: int, permission_ids: Iterable[int]
    ) -> int:
        """Revoke permissions from a role; absent pairs are ignored.

        Returns:
            Number of assignments removed
        """
        ids = set(permission_ids)
        if not ids:
            return 0
        result = await self.session.execute(
            delete(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id.in_(ids),
            )
        )
        await self.session.flush()
        return result.rowcount or 0


class PermissionRepository:
    """Repository for the permission catalogue."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, permission: Permission) -> Permission:
        self.session.add(permission)
        await self.session.flush()
        await self.session.refresh(permission)
        return permission

    async def get_by_id(self, permission_id: int) -> Permission | None:
        result = await self.session.execute(
            select(Permission).where(Permission.id == permission_id)
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Permission | None:
        result = await self.session.execute(
            select(Permission).where(Permission.name == name)
        )
        return result.scalar_one_or_none()

    async def get_existing_ids(self, permission_ids: Iterable[int]) -> set[int]:
        """Return the subset of ``permission_ids`` that exist."""
        ids = set(permission_ids)
        if not ids:
            return set()
        result = await self.session.execute(
            select(Permission.id).where(Permission.id.in_(ids))
        )
        return set(result.scalars().all())

    async def list_all(self, active_only: bool = False) -> list[Permission]:
        """List permissions ordered by resource then action."""
        stmt = select(Permission)
        if active_only:
            stmt = stmt.where(Permission.is_active.is_(True))
        stmt = stmt.order_by(Permission.resource, Permission.action, Permission.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_role(self, role_id: int) -> list[Permission]:
        """List the permissions assigned to a role, ordered by id."""
        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, permission: Permission) -> Permission:
        await self.session.flush()
        await self.session.refresh(permission)
        return permission


# Type aliases for dependency injection
RoleRepo = Annotated[RoleRepository, Depends(RoleRepository)]
PermissionRepo = Annotated[PermissionRepository, Depends(PermissionRepository)]
