"""
Auth service: register, login, refresh, logout.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasklane.core import tokens
from tasklane.core.credentials import normalize_email, verify_credentials
from tasklane.core.errors import Conflict, NotFound
from tasklane.core.security import hash_password
from tasklane.core.tokens import TokenPair
from tasklane.models.base import select_active
from tasklane.models.user import User

log = structlog.get_logger()


async def register(
    email: str, password: str, name: str, session: AsyncSession
) -> tuple[User, TokenPair]:
    """Create a user and sign them in."""
    email = normalize_email(email)

    # Soft-deleted accounts still own their address (unique column).
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise Conflict("User with this email already exists")

    user = User(
        id=uuid.uuid4(),
        email=email,
        name=name,
        password_hash=hash_password(password),
    )
    session.add(user)
    await session.flush()

    pair = await tokens.issue_pair(user.id, user.email, session)
    log.info("user.registered", user_id=str(user.id))
    return user, pair


async def login(
    email: str, password: str, session: AsyncSession
) -> tuple[User, TokenPair]:
    user = await verify_credentials(email, password, session)
    pair = await tokens.issue_pair(user.id, user.email, session)
    log.info("auth.login_success", user_id=str(user.id))
    return user, pair


async def refresh(refresh_token: str, session: AsyncSession) -> TokenPair:
    return await tokens.rotate(refresh_token, session)


async def logout(refresh_token: str | None, session: AsyncSession) -> None:
    if refresh_token:
        await tokens.revoke(refresh_token, session)


async def logout_all(user_id: uuid.UUID, session: AsyncSession) -> int:
    """Log out everywhere: revoke every live refresh token of the user."""
    return await tokens.revoke_all(user_id, session)


async def get_profile(user_id: uuid.UUID, session: AsyncSession) -> User:
    result = await session.execute(select_active(User, User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    return user
