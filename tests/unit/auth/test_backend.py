"""Unit tests for auth backend (JWT and password handling)."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from jose import jwt

from shipdesk.config import settings
from shipdesk.core.auth.backend import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_token_expiration,
    hash_password,
    hash_token,
    verify_password,
)


pytestmark = pytest.mark.unit


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_returns_hash(self):
        """hash_password should return a bcrypt hash."""
        password = "mysecretpassword"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2b$")  # bcrypt prefix

    def test_hash_password_different_each_time(self):
        """hash_password should salt every hash."""
        assert hash_password("mysecretpassword") != hash_password("mysecretpassword")

    def test_verify_password(self):
        hashed = hash_password("mysecretpassword")

        assert verify_password("mysecretpassword", hashed) is True
        assert verify_password("wrongpassword", hashed) is False


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_access_token_carries_user_and_role(self):
        """decode_token should return the identity the token was issued for."""
        user_id = uuid4()
        token = create_access_token(user_id=user_id, role_id=3)

        token_data = decode_token(token)

        assert token_data is not None
        assert token_data.user_id == user_id
        assert token_data.role_id == 3
        assert token_data.type == "access"
        assert token_data.jti

    def test_each_token_has_unique_jti(self):
        user_id = uuid4()
        first = decode_token(create_access_token(user_id=user_id, role_id=1))
        second = decode_token(create_access_token(user_id=user_id, role_id=1))

        assert first.jti != second.jti

    def test_expired_token_is_rejected(self):
        token = create_access_token(
            user_id=uuid4(), role_id=1, expires_delta=timedelta(seconds=-1)
        )

        assert decode_token(token) is None

    def test_token_signed_with_other_key_is_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "role_id": 1, "exp": 9999999999},
            "another-secret-key-that-is-long-enough-to-pass",
            algorithm=settings.jwt_algorithm,
        )

        assert decode_token(token) is None

    def test_token_without_role_is_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "exp": 9999999999},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        assert decode_token(token) is None

    def test_garbage_is_rejected(self):
        assert decode_token("not-a-jwt") is None

    def test_additional_claims(self):
        token = create_access_token(
            user_id=uuid4(), role_id=1, additional_claims={"type": "refresh"}
        )

        assert decode_token(token).type == "refresh"


class TestRefreshTokens:
    """Tests for refresh token helpers."""

    def test_refresh_tokens_are_random_and_not_jwts(self):
        first, second = create_refresh_token(), create_refresh_token()

        assert first != second
        assert decode_token(first) is None

    def test_hash_token_is_stable_sha256(self):
        token = create_refresh_token()

        assert hash_token(token) == hash_token(token)
        assert len(hash_token(token)) == 64
        assert hash_token(token) != token

    def test_token_expiration_uses_configured_days(self):
        expected = datetime.now(UTC) + timedelta(days=settings.refresh_token_expire_days)

        assert abs(get_token_expiration() - expected) < timedelta(seconds=5)
        assert get_token_expiration(days=1) < get_token_expiration()
