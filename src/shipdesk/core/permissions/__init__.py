"""Permission system for role-based access control (RBAC)."""

from shipdesk.core.permissions.checker import (
    PermissionChecker,
    PermissionInfo,
    RoleInfo,
    check_permission,
    default_permission_name,
    format_permission,
    has_all_permissions,
    has_any_permission,
    has_permission,
    has_resource_permission,
    parse_permission,
)
from shipdesk.core.permissions.decorators import (
    require_all_permissions,
    require_any_permission,
    require_permission,
    require_resource_permission,
)
from shipdesk.core.permissions.models import Permission, Role, RolePermission


__all__ = [
    # Models
    "Permission",
    # Checker
    "PermissionChecker",
    "PermissionInfo",
    "Role",
    "RoleInfo",
    "RolePermission",
    "check_permission",
    "default_permission_name",
    "format_permission",
    "has_all_permissions",
    "has_any_permission",
    "has_permission",
    "has_resource_permission",
    "parse_permission",
    # Decorators
    "require_all_permissions",
    "require_any_permission",
    "require_permission",
    "require_resource_permission",
]
