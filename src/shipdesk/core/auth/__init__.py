"""Authentication module for JWT and password handling.

Routes and the login service live in ``shipdesk.core.auth.routes`` and
``shipdesk.core.auth.service``; they depend on the users module and are
imported by the API router rather than from here.
"""

from shipdesk.core.auth.backend import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from shipdesk.core.auth.dependencies import CurrentUser, get_current_user
from shipdesk.core.auth.middleware import IdentityContextMiddleware, RequestIdMiddleware
from shipdesk.core.auth.schemas import TokenData, TokenPair


__all__ = [
    # Dependencies
    "CurrentUser",
    # Middleware
    "IdentityContextMiddleware",
    "RequestIdMiddleware",
    # Schemas
    "TokenData",
    "TokenPair",
    # Token utilities
    "create_access_token",
    "decode_token",
    "get_current_user",
    # Password utilities
    "hash_password",
    "verify_password",
]
