"""Unit tests for the pure permission helpers."""

import pytest

from shipdesk.core.permissions.checker import (
    PermissionInfo,
    default_permission_name,
    format_permission,
    has_all_permissions,
    has_any_permission,
    has_permission,
    has_resource_permission,
    parse_permission,
)


pytestmark = pytest.mark.unit


USER_READ = PermissionInfo(id=1, name="user_read", resource="user", action="read")
USER_READ_OWN = PermissionInfo(
    id=2, name="user_read_own", resource="user", action="read", scope="own"
)
ROLE_DELETE = PermissionInfo(id=3, name="role_delete", resource="role", action="delete")


class TestHasPermission:
    """Tests for name-based checks."""

    def test_has_permission(self):
        granted = {USER_READ, ROLE_DELETE}

        assert has_permission(granted, "user_read") is True
        assert has_permission(granted, "user_update") is False

    def test_empty_set_grants_nothing(self):
        assert has_permission(frozenset(), "user_read") is False

    def test_has_any_permission(self):
        granted = {USER_READ}

        assert has_any_permission(granted, ["role_delete", "user_read"]) is True
        assert has_any_permission(granted, ["role_delete"]) is False
        assert has_any_permission(granted, []) is False

    def test_has_all_permissions(self):
        granted = {USER_READ, ROLE_DELETE}

        assert has_all_permissions(granted, ["user_read", "role_delete"]) is True
        assert has_all_permissions(granted, ["user_read", "user_update"]) is False
        assert has_all_permissions(granted, []) is True


class TestHasResourcePermission:
    """Tests for resource/action/scope checks."""

    def test_matches_resource_and_action(self):
        assert has_resource_permission({USER_READ}, "user", "read") is True
        assert has_resource_permission({USER_READ}, "user", "update") is False
        assert has_resource_permission({USER_READ}, "role", "read") is False

    def test_scope_must_match_exactly(self):
        """An unscoped permission does not satisfy a scoped query."""
        assert has_resource_permission({USER_READ}, "user", "read", "own") is False
        assert has_resource_permission({USER_READ_OWN}, "user", "read", "own") is True
        assert has_resource_permission({USER_READ_OWN}, "user", "read", "all") is False

    def test_no_scope_matches_any_scope(self):
        assert has_resource_permission({USER_READ_OWN}, "user", "read") is True

    def test_empty_scope_is_not_a_wildcard(self):
        """Only an omitted scope matches everything."""
        assert has_resource_permission({USER_READ}, "user", "read", "") is False
        assert has_resource_permission({USER_READ_OWN}, "user", "read", "") is False


class TestPermissionStrings:
    """Tests for parsing and formatting permission strings."""

    def test_parse_two_parts(self):
        parsed = parse_permission("user:read")

        assert parsed.resource == "user"
        assert parsed.action == "read"
        assert parsed.scope is None

    def test_parse_three_parts(self):
        assert parse_permission("user:read:own") == ("user", "read", "own")

    @pytest.mark.parametrize("value", ["user", "user:read:own:extra", "user::own", ""])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError, match="Invalid permission string"):
            parse_permission(value)

    def test_format_permission(self):
        assert format_permission("user", "read") == "user:read"
        assert format_permission("user", "read", "own") == "user:read:own"

    def test_default_permission_name(self):
        assert default_permission_name("markup", "update") == "markup_update"
        assert default_permission_name("user", "read", "own") == "user_read_own"


class TestPermissionInfo:
    """Tests for the detached permission view."""

    def test_hashable_and_comparable(self):
        copy = PermissionInfo(id=1, name="user_read", resource="user", action="read")

        assert copy == USER_READ
        assert len({copy, USER_READ}) == 1

    def test_frozen(self):
        with pytest.raises(AttributeError):
            USER_READ.name = "other"  # type: ignore[misc]
