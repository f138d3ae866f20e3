"""Unit tests for the route permission decorators."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from shipdesk.core.errors import ForbiddenError
from shipdesk.core.permissions.checker import PermissionInfo
from shipdesk.core.permissions.decorators import (
    require_all_permissions,
    require_any_permission,
    require_permission,
    require_resource_permission,
)


pytestmark = pytest.mark.unit


GRANTED = frozenset(
    {
        PermissionInfo(id=1, name="role_read", resource="role", action="read"),
        PermissionInfo(id=2, name="user_read_own", resource="user", action="read", scope="own"),
    }
)


@pytest.fixture
def checker():
    """Patch PermissionChecker so every user holds GRANTED."""
    with patch("shipdesk.core.permissions.decorators.PermissionChecker") as checker_cls:
        checker_cls.return_value.get_granted_permissions = AsyncMock(return_value=GRANTED)
        yield checker_cls


def _kwargs() -> dict:
    return {"current_user": SimpleNamespace(id=uuid4()), "db": MagicMock()}


async def _endpoint(**kwargs) -> str:
    return "ok"


class TestRequirePermission:
    """Tests for require_permission."""

    async def test_allows_held_permission(self, checker):
        guarded = require_permission("role_read")(_endpoint)

        assert await guarded(**_kwargs()) == "ok"

    async def test_denies_missing_permission(self, checker):
        guarded = require_permission("role_delete")(_endpoint)

        with pytest.raises(ForbiddenError) as exc_info:
            await guarded(**_kwargs())

        assert exc_info.value.error_code == "permission_denied"
        assert exc_info.value.details == {"required_permissions": ["role_delete"]}

    async def test_requires_user(self, checker):
        guarded = require_permission("role_read")(_endpoint)

        with pytest.raises(ForbiddenError) as exc_info:
            await guarded(db=MagicMock())

        assert exc_info.value.error_code == "auth_required"
        checker.assert_not_called()

    async def test_requires_db(self, checker):
        guarded = require_permission("role_read")(_endpoint)

        with pytest.raises(ForbiddenError) as exc_info:
            await guarded(current_user=SimpleNamespace(id=uuid4()))

        assert exc_info.value.error_code == "permission_check_failed"

    def test_preserves_endpoint_metadata(self):
        guarded = require_permission("role_read")(_endpoint)

        assert guarded.__name__ == "_endpoint"


class TestRequireAnyAndAll:
    """Tests for require_any_permission and require_all_permissions."""

    async def test_any_allows_one_match(self, checker):
        guarded = require_any_permission(["role_delete", "role_read"])(_endpoint)

        assert await guarded(**_kwargs()) == "ok"

    async def test_any_denies_no_match(self, checker):
        guarded = require_any_permission(["role_delete", "role_update"])(_endpoint)

        with pytest.raises(ForbiddenError):
            await guarded(**_kwargs())

    async def test_all_denies_partial_match(self, checker):
        guarded = require_all_permissions(["role_read", "role_update"])(_endpoint)

        with pytest.raises(ForbiddenError):
            await guarded(**_kwargs())


class TestRequireResourcePermission:
    """Tests for require_resource_permission."""

    async def test_scoped_permission_matches_same_scope(self, checker):
        guarded = require_resource_permission("user", "read", "own")(_endpoint)

        assert await guarded(**_kwargs()) == "ok"

    async def test_scoped_permission_does_not_match_other_scope(self, checker):
        guarded = require_resource_permission("user", "read", "all")(_endpoint)

        with pytest.raises(ForbiddenError) as exc_info:
            await guarded(**_kwargs())

        assert exc_info.value.details == {"required_permissions": ["user:read:all"]}

    async def test_unscoped_query_matches_any_scope(self, checker):
        guarded = require_resource_permission("user", "read")(_endpoint)

        assert await guarded(**_kwargs()) == "ok"
