"""Permission checking logic.

This module answers "may this user do that?". It has two layers:

- Pure helpers (``has_permission``, ``has_resource_permission`` ...) that
  test membership in an already-resolved collection of permissions.
- ``PermissionChecker``, which resolves User -> Role -> Permissions through
  explicit, named fetch operations and returns plain data.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shipdesk.core.errors import NotFoundError
from shipdesk.core.permissions.models import Permission, Role, RolePermission


if TYPE_CHECKING:
    from shipdesk.modules.users.models import User


PERMISSION_SEPARATOR = ":"


@dataclass(frozen=True, slots=True)
class PermissionInfo:
    """Detached, hashable view of a permission row."""

    id: int
    name: str
    resource: str
    action: str
    scope: str | None = None
    is_active: bool = True

    @classmethod
    def from_model(cls, permission: Permission) -> "PermissionInfo":
        return cls(
            id=permission.id,
            name=permission.name,
            resource=permission.resource,
            action=permission.action,
            scope=permission.scope,
            is_active=permission.is_active,
        )


@dataclass(frozen=True, slots=True)
class RoleInfo:
    """Detached view of a role row."""

    id: int
    name: str
    description: str | None
    is_active: bool

    @classmethod
    def from_model(cls, role: Role) -> "RoleInfo":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            is_active=role.is_active,
        )


class ParsedPermission(NamedTuple):
    """A permission string split into its parts."""

    resource: str
    action: str
    scope: str | None = None


# ============================================================
# Pure helpers
# ============================================================


def has_permission(
    user_permissions: Iterable[PermissionInfo], permission_name: str
) -> bool:
    """Check membership by exact permission name."""
    return any(p.name == permission_name for p in user_permissions)


def has_any_permission(
    user_permissions: Iterable[PermissionInfo], permission_names: Iterable[str]
) -> bool:
    """Check that at least one of the named permissions is held."""
    held = {p.name for p in user_permissions}
    return any(name in held for name in permission_names)


def has_all_permissions(
    user_permissions: Iterable[PermissionInfo], permission_names: Iterable[str]
) -> bool:
    """Check that every named permission is held."""
    held = {p.name for p in user_permissions}
    return all(name in held for name in permission_names)


def has_resource_permission(
    user_permissions: Iterable[PermissionInfo],
    resource: str,
    action: str,
    scope: str | None = None,
) -> bool:
    """Check for a permission matching resource, action and (optionally) scope.

    When ``scope`` is given the match is exact: an unscoped permission does
    not satisfy a scoped query. When ``scope`` is None, any scope matches; an
    empty string is a scope like any other.

    Args:
        user_permissions: Resolved permissions of the caller
        resource: The resource to check (e.g. "user")
        action: The action to check (e.g. "read")
        scope: Optional scope that must match exactly (e.g. "own")

    Returns:
        True if a matching permission is held
    """
    return any(
        p.resource == resource and p.action == action and (scope is None or p.scope == scope)
        for p in user_permissions
    )


def parse_permission(permission_string: str) -> ParsedPermission:
    """Split "resource:action[:scope]" into its parts.

    Raises:
        ValueError: If the string has fewer than two or more than three parts
    """
    parts = permission_string.split(PERMISSION_SEPARATOR)
    if len(parts) not in (2, 3) or not all(parts):
        raise ValueError(f"Invalid permission string: {permission_string!r}")
    return ParsedPermission(*parts)


def format_permission(resource: str, action: str, scope: str | None = None) -> str:
    """Build the "resource:action[:scope]" form of a permission."""
    parts = [resource, action] + ([scope] if scope else [])
    return PERMISSION_SEPARATOR.join(parts)


def default_permission_name(resource: str, action: str, scope: str | None = None) -> str:
    """Build the stored permission key, e.g. "user_read" or "user_read_own"."""
    parts = [resource, action] + ([scope] if scope else [])
    return "_".join(parts)


# ============================================================
# Database-backed resolution
# ============================================================


class PermissionChecker:
    """Resolves a user's permissions from the role they reference.

    Every fetch is an explicit query returning detached data; nothing here
    relies on lazily populated ORM collections.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load_role_for_user(self, user_id: UUID) -> RoleInfo:
        """Fetch the role a user currently references.

        Args:
            user_id: The user's UUID

        Returns:
            The user's role

        Raises:
            NotFoundError: If the user does not exist
        """
        from shipdesk.modules.users.models import User  # noqa: PLC0415

        stmt = (
            select(Role)
            .join(User, User.role_id == Role.id)
            .where(User.id == user_id)
        )
        result = await self.session.execute(stmt)
        role = result.scalar_one_or_none()
        if role is None:
            raise NotFoundError(
                "User not found",
                resource="user",
                resource_id=str(user_id),
            )
        return RoleInfo.from_model(role)

    async def load_permissions_for_role(self, role_id: int) -> frozenset[PermissionInfo]:
        """Fetch every permission assigned to a role.

        Args:
            role_id: The role's id

        Returns:
            The assigned permissions, active or not (empty if none)
        """
        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.id)
        )
        result = await self.session.execute(stmt)
        return frozenset(PermissionInfo.from_model(p) for p in result.scalars().all())

    async def get_effective_permissions(self, user_id: UUID) -> frozenset[PermissionInfo]:
        """Get exactly the permission set of the user's current role.

        Raises:
            NotFoundError: If the user does not exist
        """
        role = await self.load_role_for_user(user_id)
        return await self.load_permissions_for_role(role.id)

    async def get_granted_permissions(self, user_id: UUID) -> frozenset[PermissionInfo]:
        """Get the permissions that authorize requests right now.

        Same as ``get_effective_permissions`` but an inactive role grants
        nothing and inactive permissions are skipped.

        Raises:
            NotFoundError: If the user does not exist
        """
        role = await self.load_role_for_user(user_id)
        if not role.is_active:
            return frozenset()
        permissions = await self.load_permissions_for_role(role.id)
        return frozenset(p for p in permissions if p.is_active)

    async def user_has_permission(self, user_id: UUID, permission_name: str) -> bool:
        """Check a single named permission for a user."""
        return has_permission(await self.get_granted_permissions(user_id), permission_name)


async def check_permission(
    user: "User",
    permission_name: str,
    session: AsyncSession,
) -> bool:
    """Convenience function to check a user's permission.

    For use in route handlers when you need a simple permission check.
    Inactive users hold no permissions.
    """
    if not user.is_active:
        return False

    checker = PermissionChecker(session)
    return await checker.user_has_permission(user.id, permission_name)
