"""Permission decorators for route protection.

This module provides decorators that can be applied to FastAPI
routes to require specific permissions. The decorated route must accept
``current_user`` and ``db`` keyword arguments.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar, cast

import structlog

from shipdesk.core.errors import ForbiddenError
from shipdesk.core.permissions.checker import (
    PermissionChecker,
    PermissionInfo,
    format_permission,
    has_all_permissions,
    has_any_permission,
    has_resource_permission,
)


if TYPE_CHECKING:
    from fastapi import Request
    from sqlalchemy.ext.asyncio import AsyncSession

    from shipdesk.modules.users.models import User


logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")

PermissionPredicate = Callable[[frozenset[PermissionInfo]], bool]


def _get_user_and_db(
    kwargs: dict[str, Any],
) -> tuple["User | None", "AsyncSession | None", "Request | None"]:
    """Extract user, db session, and request from kwargs."""
    user = cast("User | None", kwargs.get("current_user"))
    db = cast("AsyncSession | None", kwargs.get("db"))
    request = cast("Request | None", kwargs.get("request"))
    return user, db, request


def _guard(
    predicate: PermissionPredicate,
    required: list[str],
    denial_message: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Build a decorator that runs ``predicate`` on the caller's permissions."""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            user, db, request = _get_user_and_db(kwargs)

            if not user:
                raise ForbiddenError(
                    "Authentication required",
                    error_code="auth_required",
                )

            if not db:
                raise ForbiddenError(
                    "Permission check failed",
                    error_code="permission_check_failed",
                )

            granted = await PermissionChecker(db).get_granted_permissions(user.id)

            if not predicate(granted):
                logger.warning(
                    "permission_denied",
                    user_id=str(user.id),
                    required_permissions=required,
                    endpoint=request.url.path if request else "unknown",
                )
                raise ForbiddenError(
                    f"{denial_message}: {', '.join(required)}",
                    error_code="permission_denied",
                    details={"required_permissions": required},
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_permission(
    permission_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires a specific permission to access a route.

    Usage:
        @router.delete("/roles/{role_id}")
        @require_permission("role_delete")
        async def delete_role(role_id: int, current_user: CurrentUser, db: DBSession):
            ...

    Raises:
        ForbiddenError: If the user lacks the required permission
    """
    return require_all_permissions([permission_name])


def require_any_permission(
    permission_names: list[str],
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires any one of the named permissions.

    Usage:
        @router.get("/users")
        @require_any_permission(["user_read", "user_read_all"])
        async def list_users(current_user: CurrentUser, db: DBSession):
            ...
    """
    return _guard(
        lambda granted: has_any_permission(granted, permission_names),
        list(permission_names),
        "Missing required permission. Need one of",
    )


def require_all_permissions(
    permission_names: list[str],
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires all of the named permissions."""
    return _guard(
        lambda granted: has_all_permissions(granted, permission_names),
        list(permission_names),
        "Missing required permissions",
    )


def require_resource_permission(
    resource: str,
    action: str,
    scope: str | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires a permission by resource, action and scope.

    Usage:
        @router.get("/payments")
        @require_resource_permission("payment", "read")
        async def list_payments(current_user: CurrentUser, db: DBSession):
            ...
    """
    return _guard(
        lambda granted: has_resource_permission(granted, resource, action, scope),
        [format_permission(resource, action, scope)],
        "Insufficient permissions for",
    )
