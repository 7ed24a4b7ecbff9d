"""
Credential tests — token issue/verify and password hashing, exercised
directly without going through HTTP.
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from social_api.config import Settings, settings
from social_api.errors import Unauthenticated
from social_api.security import hash_password, issue_token, verify_password, verify_token


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def test_issued_token_verifies_to_same_identity():
    issued = issue_token(42)
    claims = verify_token(issued.token)
    assert claims.identity_id == 42
    assert claims.expires_at == issued.expires_at


def test_token_lifetime_is_one_hour():
    now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    issued = issue_token(1, now=now)
    assert issued.expires_at - now == timedelta(hours=1)


def test_expires_at_reported_in_epoch_milliseconds():
    now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    payload = issue_token(1, now=now).to_dict()
    assert payload["expiresAt"] == int((now + timedelta(hours=1)).timestamp()) * 1000


def test_expired_token_rejected():
    issued = issue_token(7, now=datetime.now(timezone.utc) - timedelta(hours=2))
    with pytest.raises(Unauthenticated):
        verify_token(issued.token)


def test_token_signed_with_other_secret_rejected():
    other = Settings(JWT_SECRET="someone-else")
    issued = issue_token(7, settings=other)
    with pytest.raises(Unauthenticated):
        verify_token(issued.token)


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_malformed_token_rejected(token):
    with pytest.raises(Unauthenticated):
        verify_token(token)


def test_tampered_token_rejected():
    token = issue_token(7).token
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])
    with pytest.raises(Unauthenticated):
        verify_token(tampered)


@pytest.mark.parametrize("subject", ["abc", "0", "-3", "²", "2147483648", "99999999999999999999"])
def test_unusable_subject_rejected(subject):
    exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
    token = jwt.encode(
        {"sub": subject, "exp": exp}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )
    with pytest.raises(Unauthenticated):
        verify_token(token)


def test_token_without_expiry_rejected():
    token = jwt.encode({"sub": "1"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(Unauthenticated):
        verify_token(token)


def test_production_refuses_placeholder_secret():
    with pytest.raises(RuntimeError):
        Settings(APP_ENV="production", JWT_SECRET="change-me-in-production").check_production_ready()
    Settings(APP_ENV="production", JWT_SECRET="real-secret").check_production_ready()


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_password_hash_roundtrip():
    hashed = await hash_password("hunter2")
    assert hashed != "hunter2"
    assert await verify_password("hunter2", hashed) is True
    assert await verify_password("hunter3", hashed) is False


@pytest.mark.asyncio
async def test_verify_password_tolerates_garbage_hash():
    assert await verify_password("hunter2", "not-a-bcrypt-hash") is False


@pytest.mark.asyncio
async def test_verify_password_rejects_overlong_input():
    hashed = await hash_password("x" * 72)
    assert await verify_password("x" * 73, hashed) is False
