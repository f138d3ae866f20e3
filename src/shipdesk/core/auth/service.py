"""Authentication service for login and token management."""

from datetime import UTC, datetime
from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import Depends

from shipdesk.api.dependencies import DBSession
from shipdesk.config import settings
from shipdesk.core.auth.backend import (
    create_access_token,
    create_refresh_token,
    get_token_expiration,
    hash_token,
    verify_password,
)
from shipdesk.core.auth.schemas import TokenPair
from shipdesk.core.errors import UnauthorizedError
from shipdesk.core.permissions.checker import PermissionChecker, RoleInfo


logger = structlog.get_logger()


def _is_expired(expires_at: datetime) -> bool:
    # SQLite returns naive datetimes; stored values are always UTC
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at <= datetime.now(UTC)


class AuthService:
    """Service for authentication operations.

    Handles login, refresh token rotation and logout. Access tokens carry
    the role the user holds when they are issued, so a refresh picks up a
    role change made since login.
    """

    def __init__(self, db: DBSession) -> None:
        from shipdesk.modules.users.repos import (  # noqa: PLC0415
            RefreshTokenRepository,
            UserRepository,
        )

        self.db = db
        self.user_repo = UserRepository(db)
        self.token_repo = RefreshTokenRepository(db)
        self.checker = PermissionChecker(db)

    async def login(
        self,
        email: str,
        password: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> tuple[Any, TokenPair]:
        """Authenticate a user with email and password.

        Args:
            email: User's email address
            password: Plain text password
            user_agent: Client user agent
            ip_address: Client IP address

        Returns:
            Tuple of (user, token_pair)

        Raises:
            UnauthorizedError: If credentials are invalid or the account is inactive
        """
        user = await self.user_repo.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning("login_failed", reason="invalid_credentials")
            raise UnauthorizedError(
                "Invalid email or password",
                error_code="invalid_credentials",
            )

        if not user.is_active:
            logger.warning("login_failed", user_id=str(user.id), reason="inactive")
            raise UnauthorizedError(
                "Account is deactivated",
                error_code="account_inactive",
            )

        token_pair = await self._create_tokens(user, user_agent, ip_address)
        logger.info("login_succeeded", user_id=str(user.id), role_id=user.role_id)
        return user, token_pair

    async def refresh_tokens(
        self,
        refresh_token: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> TokenPair:
        """Exchange a refresh token for a new token pair.

        The presented token is revoked whatever the outcome, except when it
        is unknown or already revoked.

        Raises:
            UnauthorizedError: If the token is unknown, revoked or expired, or
                the user is gone or inactive
        """
        stored_token = await self.token_repo.get_by_hash(hash_token(refresh_token))
        if not stored_token:
            logger.warning("token_refresh_failed", reason="invalid_refresh_token")
            raise UnauthorizedError(
                "Invalid refresh token",
                error_code="invalid_refresh_token",
            )

        await self.token_repo.revoke(stored_token)

        if _is_expired(stored_token.expires_at):
            logger.warning("token_refresh_failed", reason="token_expired")
            raise UnauthorizedError(
                "Refresh token expired",
                error_code="token_expired",
            )

        user = await self.user_repo.get_by_id(stored_token.user_id)
        if not user or not user.is_active:
            logger.warning(
                "token_refresh_failed",
                user_id=str(stored_token.user_id),
                reason="user_invalid",
            )
            raise UnauthorizedError(
                "User not found or inactive",
                error_code="user_invalid",
            )

        token_pair = await self._create_tokens(user, user_agent, ip_address)
        logger.info("token_refreshed", user_id=str(user.id), role_id=user.role_id)
        return token_pair

    async def logout(self, refresh_token: str) -> None:
        """Revoke a refresh token; unknown tokens are ignored."""
        stored_token = await self.token_repo.get_by_hash(hash_token(refresh_token))
        if stored_token:
            await self.token_repo.revoke(stored_token)
            logger.info("logout", user_id=str(stored_token.user_id))

    async def logout_all(self, user_id: UUID) -> int:
        """Revoke every refresh token of a user.

        Returns:
            Number of tokens revoked
        """
        revoked = await self.token_repo.revoke_all_for_user(user_id)
        logger.info("logout_all", user_id=str(user_id), revoked=revoked)
        return revoked

    async def describe(self, user: Any) -> tuple[RoleInfo, list[str]]:
        """Return the user's role and the permission names granted right now."""
        role = await self.checker.load_role_for_user(user.id)
        granted = await self.checker.get_granted_permissions(user.id)
        return role, sorted(p.name for p in granted)

    async def _create_tokens(
        self,
        user: Any,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> TokenPair:
        from shipdesk.modules.users.models import RefreshToken  # noqa: PLC0415

        refresh_token = create_refresh_token()
        await self.token_repo.create(
            RefreshToken(
                user_id=user.id,
                token_hash=hash_token(refresh_token),
                expires_at=get_token_expiration(),
                user_agent=user_agent,
                ip_address=ip_address,
            )
        )
        return TokenPair(
            access_token=create_access_token(user.id, user.role_id),
            refresh_token=refresh_token,
            expires_in=settings.access_token_expire_minutes * 60,
        )


# Type alias for dependency injection
AuthSvc = Annotated[AuthService, Depends(AuthService)]
