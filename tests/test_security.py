"""
Tests for the cryptographic primitives and the credential store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest

from tasklane.core.credentials import get_user_by_email, normalize_email, verify_credentials
from tasklane.core.errors import InvalidCredentials
from tasklane.core.security import decode_token, hash_password, hash_token, sign_token, verify_password
from tasklane.models.user import User

SECRET = "unit-test-secret"


# ---------------------------------------------------------------------------
# Unit Tests: Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("Secret123")
        assert hashed != "Secret123"
        assert verify_password("Secret123", hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("Secret123")
        assert not verify_password("wrong", hashed)

    def test_over_long_password_never_verifies(self):
        hashed = hash_password("A1" + "x" * 70)
        assert not verify_password("A1" + "x" * 80, hashed)

    def test_over_long_password_cannot_be_hashed(self):
        with pytest.raises(ValueError, match="72 bytes"):
            hash_password("\u00e9" * 40)

    def test_different_hashes_for_same_password(self):
        """bcrypt uses random salt, so hashes differ."""
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2
        assert verify_password("same", h1)
        assert verify_password("same", h2)


# ---------------------------------------------------------------------------
# Unit Tests: Signed tokens
# ---------------------------------------------------------------------------

class TestSignedTokens:
    def test_sign_and_decode(self):
        token, expires_at = sign_token({"sub": "u1", "type": "access"}, SECRET, timedelta(minutes=5))
        payload = decode_token(token, SECRET)
        assert payload["sub"] == "u1"
        assert payload["type"] == "access"
        assert payload["exp"] == int(expires_at.timestamp())
        assert "jti" in payload

    def test_tokens_issued_in_the_same_second_differ(self):
        now = datetime.now(timezone.utc)
        t1, _ = sign_token({"sub": "u1", "type": "refresh"}, SECRET, timedelta(days=1), now=now)
        t2, _ = sign_token({"sub": "u1", "type": "refresh"}, SECRET, timedelta(days=1), now=now)
        assert t1 != t2
        assert hash_token(t1) != hash_token(t2)

    def test_expired_token_raises(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token, _ = sign_token({"sub": "u1", "type": "access"}, SECRET, timedelta(minutes=5), now=past)
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_token(token, SECRET)

    def test_wrong_secret_raises(self):
        token, _ = sign_token({"sub": "u1", "type": "access"}, SECRET, timedelta(minutes=5))
        with pytest.raises(pyjwt.InvalidSignatureError):
            decode_token(token, "other-secret")

    def test_missing_type_claim_raises(self):
        token, _ = sign_token({"sub": "u1"}, SECRET, timedelta(minutes=5))
        with pytest.raises(pyjwt.MissingRequiredClaimError):
            decode_token(token, SECRET)

    def test_hash_token_is_stable_sha256(self):
        assert hash_token("abc") == hash_token("abc")
        assert len(hash_token("abc")) == 64


# ---------------------------------------------------------------------------
# Integration Tests: Credential store
# ---------------------------------------------------------------------------

@pytest.fixture
async def alice(session):
    user = User(email="alice@example.com", name="Alice", password_hash=hash_password("Secret123"))
    session.add(user)
    await session.flush()
    return user


class TestCredentials:
    def test_normalize_email(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"

    @pytest.mark.asyncio
    async def test_valid_credentials(self, session, alice):
        user = await verify_credentials("alice@example.com", "Secret123", session)
        assert user.id == alice.id

    @pytest.mark.asyncio
    async def test_email_lookup_is_case_insensitive(self, session, alice):
        user = await verify_credentials("ALICE@example.com", "Secret123", session)
        assert user.id == alice.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, session, alice):
        with pytest.raises(InvalidCredentials):
            await verify_credentials("alice@example.com", "wrong", session)

    @pytest.mark.asyncio
    async def test_unknown_email_looks_like_wrong_password(self, session, alice):
        with pytest.raises(InvalidCredentials) as unknown:
            await verify_credentials("nobody@example.com", "Secret123", session)
        with pytest.raises(InvalidCredentials) as wrong:
            await verify_credentials("alice@example.com", "wrong", session)
        assert unknown.value.to_dict() == wrong.value.to_dict()

    @pytest.mark.asyncio
    async def test_soft_deleted_user_cannot_log_in(self, session, alice):
        alice.deleted_at = datetime.now(timezone.utc)
        await session.flush()
        assert await get_user_by_email("alice@example.com", session) is None
        with pytest.raises(InvalidCredentials):
            await verify_credentials("alice@example.com", "Secret123", session)
