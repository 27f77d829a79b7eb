"""
Authentication endpoints.

- Email/Password registration & login
- Refresh token rotation
- Logout (one device) and logout-all (every device)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tasklane.core.auth import Identity, get_identity
from tasklane.core.database import get_session
from tasklane.core.tokens import TokenPair as IssuedPair
from tasklane.models.user import User
from tasklane.services import auth as auth_service
from tasklane_shared.schemas.auth import (
    AuthResponse,
    LoginRequest,
    LogoutAllResponse,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UserResponse,
)
from tasklane_shared.schemas.common import MessageResponse

router = APIRouter()


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
    )


def _token_response(pair: IssuedPair) -> TokenPair:
    return TokenPair(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user with email/password and return a token pair."""
    user, pair = await auth_service.register(body.email, body.password, body.name, session)
    return AuthResponse(user=_user_response(user), tokens=_token_response(pair))


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a token pair."""
    user, pair = await auth_service.login(body.email, body.password, session)
    return AuthResponse(user=_user_response(user), tokens=_token_response(pair))


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    body: RefreshRequest,
    session: AsyncSession = Depends(get_session),
):
    """Rotate a refresh token. The presented token is spent either way it is used."""
    pair = await auth_service.refresh(body.refresh_token, session)
    return _token_response(pair)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest,
    session: AsyncSession = Depends(get_session),
):
    """Revoke the given refresh token, if any."""
    await auth_service.logout(body.refresh_token, session)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """Revoke every refresh token held by the caller."""
    revoked = await auth_service.logout_all(identity.user_id, session)
    return LogoutAllResponse(message="Logged out from all devices", revoked=revoked)


@router.get("/me", response_model=UserResponse)
async def me(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    user = await auth_service.get_profile(identity.user_id, session)
    return _user_response(user)
