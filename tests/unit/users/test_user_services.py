"""Unit tests for UserService."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from shipdesk.core.auth.backend import verify_password
from shipdesk.core.errors import ConflictError, NotFoundError, ValidationError
from shipdesk.core.permissions.models import Role
from shipdesk.modules.users.models import User
from shipdesk.modules.users.schemas import UserCreate, UserUpdate
from shipdesk.modules.users.services import UserService


pytestmark = pytest.mark.unit


@pytest.fixture
def service() -> UserService:
    svc = UserService(MagicMock())
    svc.repo = AsyncMock()
    svc.role_repo = AsyncMock()
    svc.token_repo = AsyncMock()
    return svc


def _user(**kwargs) -> User:
    defaults = {
        "id": uuid4(),
        "email": "exists@example.com",
        "full_name": "Existing",
        "password_hash": "hash",
        "role_id": 3,
        "is_active": True,
    }
    return User(**{**defaults, **kwargs})


class TestCreateUser:
    """Tests for UserService.create_user method."""

    async def test_create_user_with_default_role(self, service: UserService):
        """Without a role_id the user gets the configured default role."""
        service.repo.get_by_email.return_value = None
        service.role_repo.get_by_name.return_value = Role(id=3, name="user", is_active=True)
        service.repo.create.side_effect = lambda u: u

        result = await service.create_user(
            UserCreate(
                email="new@example.com",
                full_name="New User",
                password="TestPassword123!",
            )
        )

        assert result.role_id == 3
        assert result.password_hash != "TestPassword123!"
        assert verify_password("TestPassword123!", result.password_hash)
        service.role_repo.get_by_name.assert_awaited_once_with("user")

    async def test_duplicate_email_raises_conflict(self, service: UserService):
        service.repo.get_by_email.return_value = _user()

        with pytest.raises(ConflictError) as exc_info:
            await service.create_user(
                UserCreate(
                    email="exists@example.com",
                    full_name="New User",
                    password="TestPassword123!",
                )
            )

        assert exc_info.value.error_code == "email_exists"
        service.repo.create.assert_not_awaited()

    async def test_inactive_role_rejected(self, service: UserService):
        service.repo.get_by_email.return_value = None
        service.role_repo.get_by_id.return_value = Role(id=5, name="legacy", is_active=False)

        with pytest.raises(ValidationError):
            await service.create_user(
                UserCreate(
                    email="new@example.com",
                    full_name="New User",
                    password="TestPassword123!",
                    role_id=5,
                )
            )

        service.repo.create.assert_not_awaited()


class TestUpdateUser:
    """Tests for UserService.update_user and role changes."""

    async def test_missing_user_raises_not_found(self, service: UserService):
        service.repo.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.update_user(uuid4(), UserUpdate(full_name="X"))

    async def test_email_taken_by_other_user(self, service: UserService):
        service.repo.get_by_id.return_value = _user(email="me@example.com")
        service.repo.get_by_email.return_value = _user(email="taken@example.com")

        with pytest.raises(ConflictError):
            await service.update_user(uuid4(), UserUpdate(email="taken@example.com"))

    async def test_password_is_rehashed(self, service: UserService):
        user = _user()
        service.repo.get_by_id.return_value = user
        service.repo.update.side_effect = lambda u: u

        await service.update_user(user.id, UserUpdate(password="BrandNewPass1!"))

        assert verify_password("BrandNewPass1!", user.password_hash)

    async def test_change_role(self, service: UserService):
        user = _user(role_id=3)
        service.repo.get_by_id.return_value = user
        service.role_repo.get_by_id.return_value = Role(id=4, name="ops", is_active=True)
        service.repo.update.side_effect = lambda u: u

        result = await service.change_role(user.id, 4)

        assert result.role_id == 4

    async def test_deactivate_user(self, service: UserService):
        user = _user()
        service.repo.get_by_id.return_value = user
        service.repo.update.side_effect = lambda u: u

        result = await service.deactivate_user(user.id)

        assert result.is_active is False
        service.token_repo.revoke_all_for_user.assert_awaited_once_with(user.id)
