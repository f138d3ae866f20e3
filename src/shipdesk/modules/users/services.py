"""User service for business logic."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends

from shipdesk.api.dependencies import DBSession
from shipdesk.config import settings
from shipdesk.core.auth.backend import hash_password
from shipdesk.core.errors import ConflictError, NotFoundError, ValidationError
from shipdesk.core.permissions.models import Role
from shipdesk.modules.roles.repos import RoleRepository
from shipdesk.modules.users.models import User
from shipdesk.modules.users.repos import RefreshTokenRepository, UserRepository
from shipdesk.modules.users.schemas import UserCreate, UserUpdate


logger = structlog.get_logger()


class UserService:
    """Service for user management operations.

    Contains business logic for user CRUD operations, role
    changes and account activation.
    """

    def __init__(self, db: DBSession) -> None:
        self.db = db
        self.repo = UserRepository(db)
        self.role_repo = RoleRepository(db)
        self.token_repo = RefreshTokenRepository(db)

    async def _resolve_role(self, role_id: int | None) -> Role:
        """Find the role a user may be attached to.

        Raises:
            ValidationError: If the role does not exist or is inactive
        """
        if role_id is None:
            role = await self.role_repo.get_by_name(settings.default_role_name)
        else:
            role = await self.role_repo.get_by_id(role_id)

        if role is None or not role.is_active:
            raise ValidationError(
                "Invalid or inactive role",
                errors=[{"field": "role_id", "message": "Role must exist and be active"}],
            )
        return role

    async def _ensure_email_free(self, email: str) -> None:
        if await self.repo.get_by_email(email):
            raise ConflictError(
                "Email already registered",
                error_code="email_exists",
                details={"email": email},
            )

    async def create_user(self, data: UserCreate) -> User:
        """Create a new user.

        Args:
            data: User creation data, plaintext password included

        Returns:
            The created user

        Raises:
            ConflictError: If email already exists
            ValidationError: If the role is missing or inactive
        """
        await self._ensure_email_free(data.email)
        role = await self._resolve_role(data.role_id)

        user = User(
            email=data.email,
            full_name=data.full_name,
            company_name=data.company_name,
            password_hash=hash_password(data.password),
            role_id=role.id,
        )
        user = await self.repo.create(user)
        logger.info("user_created", user_id=str(user.id), role_id=role.id)
        return user

    async def get_user(self, user_id: UUID) -> User:
        """Get a user by ID.

        Raises:
            NotFoundError: If user not found
        """
        user = await self.repo.get_by_id(user_id)
        if not user:
            raise NotFoundError(
                "User not found",
                resource="user",
                resource_id=str(user_id),
            )
        return user

    async def list_users(
        self,
        page: int = 1,
        page_size: int = 20,
        role_id: int | None = None,
    ) -> tuple[list[User], int]:
        """List users with pagination and an optional role filter."""
        return await self.repo.list_all(page=page, page_size=page_size, role_id=role_id)

    async def update_user(self, user_id: UUID, data: UserUpdate) -> User:
        """Apply a partial update to a user.

        The password is re-hashed whenever a new one is supplied.

        Raises:
            NotFoundError: If user not found
            ConflictError: If the new email belongs to another user
        """
        user = await self.get_user(user_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        new_email = update_data.get("email")
        if new_email and new_email != user.email:
            await self._ensure_email_free(new_email)

        password = update_data.pop("password", None)
        if password:
            user.password_hash = hash_password(password)

        for field, value in update_data.items():
            setattr(user, field, value)

        user = await self.repo.update(user)
        logger.info(
            "user_updated",
            user_id=str(user.id),
            fields=sorted(update_data) + (["password"] if password else []),
        )
        return user

    async def change_role(self, user_id: UUID, role_id: int) -> User:
        """Move a user to another role.

        Raises:
            NotFoundError: If user not found
            ValidationError: If the role is missing or inactive
        """
        user = await self.get_user(user_id)
        role = await self._resolve_role(role_id)
        previous = user.role_id
        user.role_id = role.id
        user = await self.repo.update(user)
        logger.info(
            "user_role_changed",
            user_id=str(user.id),
            from_role_id=previous,
            to_role_id=role.id,
        )
        return user

    async def set_active(self, user_id: UUID, is_active: bool) -> User:
        """Activate or deactivate a user account.

        Deactivation also revokes the user's refresh tokens.
        """
        user = await self.get_user(user_id)
        user.is_active = is_active
        user = await self.repo.update(user)
        if not is_active:
            await self.token_repo.revoke_all_for_user(user.id)
        logger.info("user_status_changed", user_id=str(user.id), is_active=is_active)
        return user

    async def activate_user(self, user_id: UUID) -> User:
        return await self.set_active(user_id, True)

    async def deactivate_user(self, user_id: UUID) -> User:
        return await self.set_active(user_id, False)


# Type alias for dependency injection
UserSvc = Annotated[UserService, Depends(UserService)]
