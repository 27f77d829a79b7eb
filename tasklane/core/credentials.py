"""
Credential store: email/password verification.

Unknown email and wrong password are indistinguishable to the caller: both
raise ``InvalidCredentials`` and both pay for one bcrypt comparison.
"""

from __future__ import annotations

import secrets
from functools import lru_cache

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tasklane.core.errors import InvalidCredentials
from tasklane.core.security import hash_password, verify_password
from tasklane.models.base import select_active
from tasklane.models.user import User

log = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


@lru_cache
def _dummy_hash() -> str:
    return hash_password(secrets.token_urlsafe(16))


async def get_user_by_email(email: str, session: AsyncSession) -> User | None:
    """Look up a live user by (normalized) email."""
    result = await session.execute(
        select_active(User, User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def verify_credentials(
    email: str, password: str, session: AsyncSession
) -> User:
    """Return the user owning ``email`` if ``password`` matches its hash."""
    user = await get_user_by_email(email, session)

    if user is None:
        verify_password(password, _dummy_hash())
        log.warning("auth.login_failure", reason="unknown_email")
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        log.warning("auth.login_failure", user_id=str(user.id), reason="bad_password")
        raise InvalidCredentials()

    return user
