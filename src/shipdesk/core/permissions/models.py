"""Permission system database models.

This module defines the RBAC (Role-Based Access Control) tables:
- Permission: an action that can be performed on a resource, optionally scoped
- Role: a named bundle of permissions; every user references exactly one role
- RolePermission: explicit join entity pairing a role with a permission

Associations are not exposed as lazy ORM collections. Related
rows are fetched through named repository/checker operations instead.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from shipdesk.core.constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_PERMISSION_ACTION_LENGTH,
    MAX_PERMISSION_NAME_LENGTH,
    MAX_PERMISSION_RESOURCE_LENGTH,
    MAX_PERMISSION_SCOPE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
)
from shipdesk.core.database.base import Base, IntegerIDMixin, TimestampMixin


class Permission(Base, IntegerIDMixin, TimestampMixin):
    """Permission model representing an action on a resource.

    Attributes:
        name: Unique human-readable key (e.g. "user_read")
        description: Human-readable description of the permission
        resource: The resource being protected (e.g. "user")
        action: The action being performed (e.g. "read")
        scope: Optional qualifier (e.g. "own"); matched exactly
        is_active: Inactive permissions are never granted at request time

    Permissions are never physically deleted while referenced by a role;
    they are deactivated instead.
    """

    __tablename__ = "permissions"

    name: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_NAME_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )
    resource: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_RESOURCE_LENGTH),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_ACTION_LENGTH),
        nullable=False,
    )
    scope: Mapped[str | None] = mapped_column(
        String(MAX_PERMISSION_SCOPE_LENGTH),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, name={self.name})>"


class Role(Base, IntegerIDMixin, TimestampMixin):
    """Role model representing a named set of permissions.

    Attributes:
        name: Globally unique role name (e.g. "admin", "manager")
        description: Human-readable description of the role
        is_active: Inactive roles grant no permissions at request time

    A role cannot be deleted while any user references it.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(MAX_ROLE_NAME_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"


class RolePermission(Base):
    """Join entity linking a role to one of its permissions.

    The composite primary key makes every (role, permission) pair unique.
    Rows are removed with either side.
    """

    __tablename__ = "role_permissions"
    __table_args__ = (PrimaryKeyConstraint("role_id", "permission_id"),)

    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<RolePermission(role_id={self.role_id}, "
            f"permission_id={self.permission_id})>"
        )
