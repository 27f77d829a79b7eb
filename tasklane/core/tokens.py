"""
Token service: access/refresh pair issuance, verification and rotation.

Access tokens are stateless and checked by signature, expiry and type only.
Refresh tokens are also recorded in the ``refresh_tokens`` ledger, and the
ledger wins over the signature: a refresh token is honored only while its row
exists, is unrevoked and is unexpired. Rotation revokes the presented row
with a single conditional UPDATE, so of several concurrent rotations of the
same token exactly one can succeed.

Every failure surfaces as ``Unauthorized``; the concrete reason is logged.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasklane.core.config import get_settings
from tasklane.core.errors import Unauthorized
from tasklane.core.security import decode_token, hash_token, sign_token
from tasklane.models.base import select_active
from tasklane.models.refresh_token import RefreshToken
from tasklane.models.user import User
from tasklane_shared.schemas.common import TokenType

log = structlog.get_logger()
settings = get_settings()


@dataclass(frozen=True)
class Claims:
    user_id: uuid.UUID
    email: str
    type: TokenType
    jti: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

def create_access_token(user_id: uuid.UUID, email: str) -> str:
    token, _ = sign_token(
        {"sub": str(user_id), "email": email, "type": TokenType.ACCESS.value},
        settings.access_token_secret,
        timedelta(minutes=settings.access_token_expire_minutes),
    )
    return token


def create_refresh_token(user_id: uuid.UUID, email: str) -> tuple[str, datetime]:
    """Returns (token, expires_at)."""
    return sign_token(
        {"sub": str(user_id), "email": email, "type": TokenType.REFRESH.value},
        settings.refresh_token_secret,
        timedelta(days=settings.refresh_token_expire_days),
    )


def _decode(token: str, secret: str, expected: TokenType) -> Claims:
    """Verify signature, expiry and type tag. Raises Unauthorized."""
    try:
        payload = decode_token(token, secret)
    except jwt.ExpiredSignatureError:
        log.info("token.rejected", kind=expected.value, reason="expired")
        raise Unauthorized()
    except jwt.PyJWTError as exc:
        log.info("token.rejected", kind=expected.value, reason="malformed", error=type(exc).__name__)
        raise Unauthorized()

    if payload.get("type") != expected.value:
        log.info("token.rejected", kind=expected.value, reason="wrong_type")
        raise Unauthorized()

    try:
        user_id = uuid.UUID(payload["sub"])
    except (ValueError, TypeError):
        log.info("token.rejected", kind=expected.value, reason="bad_subject")
        raise Unauthorized()

    return Claims(
        user_id=user_id,
        email=payload.get("email", ""),
        type=expected,
        jti=payload.get("jti"),
    )


def verify_access(token: str) -> Claims:
    """Verify an access token. Never consults storage."""
    return _decode(token, settings.access_token_secret, TokenType.ACCESS)


def verify_refresh_signature(token: str) -> Claims:
    """Signature/expiry/type check for a refresh token (ledger not consulted)."""
    return _decode(token, settings.refresh_token_secret, TokenType.REFRESH)


# ---------------------------------------------------------------------------
# Ledger operations
# ---------------------------------------------------------------------------

async def issue_pair(
    user_id: uuid.UUID, email: str, session: AsyncSession
) -> TokenPair:
    """Issue a new access/refresh pair and record the refresh token.

    Other refresh tokens held by the user are left alone (multi-device).
    """
    access_token = create_access_token(user_id, email)
    refresh_token, expires_at = create_refresh_token(user_id, email)

    session.add(
        RefreshToken(
            user_id=user_id,
            token_hash=hash_token(refresh_token),
            expires_at=expires_at,
        )
    )
    await session.flush()

    log.info("token.issued", user_id=str(user_id))
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


async def rotate(refresh_token: str, session: AsyncSession) -> TokenPair:
    """Exchange a refresh token for a brand-new pair (single use)."""
    claims = verify_refresh_signature(refresh_token)
    token_hash = hash_token(refresh_token)
    now = datetime.now(timezone.utc)

    result = await session.execute(
        select(RefreshToken)
        .where(RefreshToken.token_hash == token_hash)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is None:
        log.warning("token.rotate_rejected", user_id=str(claims.user_id), reason="unknown")
        raise Unauthorized()
    if row.user_id != claims.user_id:
        log.warning("token.rotate_rejected", user_id=str(claims.user_id), reason="subject_mismatch")
        raise Unauthorized()

    # Compare-and-set on "not yet revoked": the serialization point for
    # concurrent rotations of the same token.
    revoked = await session.execute(
        update(RefreshToken)
        .where(
            RefreshToken.id == row.id,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now,
        )
        .values(revoked_at=now)
        .execution_options(synchronize_session=False)
    )
    if revoked.rowcount != 1:
        reason = "revoked" if row.revoked_at is not None else "expired_or_raced"
        log.warning("token.rotate_rejected", user_id=str(row.user_id), reason=reason)
        raise Unauthorized()

    user = (
        await session.execute(select_active(User, User.id == row.user_id))
    ).scalar_one_or_none()
    if user is None:
        log.warning("token.rotate_rejected", user_id=str(row.user_id), reason="user_gone")
        raise Unauthorized()

    pair = await issue_pair(user.id, user.email, session)
    log.info("token.rotated", user_id=str(user.id))
    return pair


async def revoke(refresh_token: str, session: AsyncSession) -> None:
    """Revoke one refresh token. Idempotent; unknown tokens are ignored."""
    result = await session.execute(
        update(RefreshToken)
        .where(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.revoked_at.is_(None),
        )
        .values(revoked_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        log.info("token.revoked")


async def revoke_all(user_id: uuid.UUID, session: AsyncSession) -> int:
    """Revoke every live refresh token for ``user_id``. Returns the count."""
    result = await session.execute(
        update(RefreshToken)
        .where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        )
        .values(revoked_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    log.info("token.revoked_all", user_id=str(user_id), count=result.rowcount)
    return result.rowcount
