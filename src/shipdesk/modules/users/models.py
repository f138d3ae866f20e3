"""User and refresh token database models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shipdesk.core.constants import (
    MAX_COMPANY_NAME_LENGTH,
    MAX_EMAIL_LENGTH,
    MAX_IP_ADDRESS_LENGTH,
    MAX_NAME_LENGTH,
    MAX_STRIPE_ID_LENGTH,
    MAX_USER_AGENT_LENGTH,
    TOKEN_HASH_LENGTH,
)
from shipdesk.core.database.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """User model representing an authenticated account.

    Every user references exactly one role. The foreign key is RESTRICT so
    a role with users can never be removed underneath them.

    Attributes:
        email: Globally unique email address
        password_hash: Bcrypt-hashed password, never the plaintext
        full_name: User's full name
        company_name: Optional company the user ships for
        role_id: The user's role
        is_active: Whether the user can log in
        email_verified: Whether the email address was confirmed
        stripe_customer_id: Stripe customer created on first payment
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    company_name: Mapped[str | None] = mapped_column(
        String(MAX_COMPANY_NAME_LENGTH),
        nullable=True,
    )
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(MAX_STRIPE_ID_LENGTH),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role_id={self.role_id})>"


class RefreshToken(Base, UUIDMixin, TimestampMixin):
    """A refresh token issued at login or on rotation.

    Only the SHA-256 hash of the token is stored. A token is used once:
    refreshing revokes it and issues a new one.

    Attributes:
        user_id: The user the token belongs to
        token_hash: SHA-256 hex digest of the token
        expires_at: When the token stops being accepted
        revoked: Set on rotation, logout or account deactivation
        user_agent: Client user agent at issue time
        ip_address: Client address at issue time
    """

    __tablename__ = "refresh_tokens"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(TOKEN_HASH_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    revoked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    user_agent: Mapped[str | None] = mapped_column(
        String(MAX_USER_AGENT_LENGTH),
        nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(MAX_IP_ADDRESS_LENGTH),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, user_id={self.user_id}, revoked={self.revoked})>"
