"""Helpers for building persisted users and their auth headers."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from shipdesk.core.auth.backend import create_access_token, hash_password
from shipdesk.core.permissions.models import Role
from shipdesk.modules.users.models import User


TEST_PASSWORD = "SecurePass123!"


async def make_user(db: AsyncSession, email: str, role: Role, **kwargs: Any) -> User:
    """Persist a user referencing ``role``."""
    user = User(
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        full_name=kwargs.pop("full_name", "Test User"),
        role_id=role.id,
        **kwargs,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


def headers_for(user: User) -> dict[str, str]:
    """Authorization headers with a valid access token for ``user``."""
    token = create_access_token(user_id=user.id, role_id=user.role_id)
    return {"Authorization": f"Bearer {token}"}
