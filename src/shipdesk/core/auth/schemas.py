"""Authentication schemas for token handling."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class TokenData(BaseModel):
    """Data extracted from a JWT token.

    Attributes:
        user_id: The user's UUID
        role_id: The role the user held when the token was issued
        exp: Token expiration time
        type: Token type
        jti: Unique token id
    """

    user_id: UUID
    role_id: int
    exp: datetime
    type: str = "access"
    jti: str | None = None


class TokenPair(BaseModel):
    """An access token and the refresh token that renews it.

    Attributes:
        access_token: JWT for API access
        refresh_token: Opaque token for /auth/refresh, single use
        token_type: Always "bearer"
        expires_in: Access token expiration in seconds
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
