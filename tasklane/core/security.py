"""
Cryptographic primitives: password hashing and signed tokens.

Nothing here touches the database; see ``credentials`` and ``tokens`` for
the stateful parts.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from tasklane.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input.
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor.

    Raises ValueError for passwords longer than ``BCRYPT_MAX_BYTES`` once encoded.
    """
    if len(password.encode()) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password cannot be longer than {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    ).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash. Over-long input never matches."""
    if len(password.encode()) > BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def sign_token(
    claims: dict,
    secret: str,
    ttl: timedelta,
    *,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """Sign ``claims`` with an ``iat``/``exp``/``jti``. Returns (token, expires_at)."""
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + ttl
    payload = {
        **claims,
        "iat": issued_at,
        "exp": expires_at,
        "jti": str(uuid.uuid4()),
    }
    token = jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)
    return token, expires_at


def decode_token(token: str, secret: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp", "iat", "type"]},
    )


def hash_token(token: str) -> str:
    """SHA-256 fingerprint used as the ledger lookup key for refresh tokens."""
    return hashlib.sha256(token.encode()).hexdigest()
