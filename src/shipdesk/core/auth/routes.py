"""Authentication API routes.

Provides endpoints for:
- Login with email and password
- Refresh token rotation and logout
- The current user's profile and permissions
"""

from fastapi import APIRouter, Request, status

from shipdesk.core.auth.dependencies import CurrentUser
from shipdesk.core.auth.schemas import TokenPair
from shipdesk.core.auth.service import AuthSvc
from shipdesk.core.logging import get_client_ip
from shipdesk.modules.users.schemas import (
    LoginRequest,
    MeResponse,
    RefreshTokenRequest,
    TokenResponse,
    UserResponse,
)


router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(tokens: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
    description="Authenticate with email and password to receive access and refresh tokens.",
)
async def login(
    data: LoginRequest,
    service: AuthSvc,
    request: Request,
) -> TokenResponse:
    """Login with email and password."""
    _user, tokens = await service.login(
        email=data.email,
        password=data.password,
        user_agent=request.headers.get("User-Agent"),
        ip_address=get_client_ip(request),
    )
    return _token_response(tokens)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh access token",
    description=(
        "Exchange a refresh token for a new token pair. "
        "The presented refresh token is revoked."
    ),
)
async def refresh_token(
    data: RefreshTokenRequest,
    service: AuthSvc,
    request: Request,
) -> TokenResponse:
    """Rotate a refresh token."""
    tokens = await service.refresh_tokens(
        refresh_token=data.refresh_token,
        user_agent=request.headers.get("User-Agent"),
        ip_address=get_client_ip(request),
    )
    return _token_response(tokens)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout",
    description="Revoke a refresh token to end the session it belongs to.",
)
async def logout(
    data: RefreshTokenRequest,
    service: AuthSvc,
) -> None:
    """Logout by revoking the refresh token."""
    await service.logout(data.refresh_token)


@router.post(
    "/logout-all",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout from all devices",
    description="Revoke every refresh token of the current user.",
)
async def logout_all(
    current_user: CurrentUser,
    service: AuthSvc,
) -> None:
    """Logout from all devices."""
    await service.logout_all(current_user.id)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user",
    description="Returns the authenticated user's profile and granted permission names.",
)
async def get_me(
    current_user: CurrentUser,
    service: AuthSvc,
) -> MeResponse:
    """Get current user profile."""
    role, permissions = await service.describe(current_user)
    return MeResponse(
        **UserResponse.model_validate(current_user).model_dump(),
        role_name=role.name,
        permissions=permissions,
    )
