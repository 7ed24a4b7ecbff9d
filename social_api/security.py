"""
Credential issuing/verification and password hashing.

Tokens are HS256 JWTs carrying the user id in ``sub`` plus ``iat`` and
``exp``.  Verification only checks signature and expiry; mapping the
subject to a live user is the identity resolver's job (see ``guards``).

bcrypt is CPU-bound, so hashing and comparison run in the threadpool to
keep the event loop free.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from starlette.concurrency import run_in_threadpool

from social_api.config import Settings, settings as default_settings
from social_api.errors import Unauthenticated
from social_api.schemas import MAX_ID, MAX_PASSWORD_BYTES, positive_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime

    def to_dict(self) -> dict:
        # Epoch milliseconds, as clients compare it against Date.now().
        return {"token": self.token, "expiresAt": int(self.expires_at.timestamp() * 1000)}


@dataclass(frozen=True)
class TokenClaims:
    identity_id: int
    issued_at: datetime
    expires_at: datetime


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def issue_token(
    identity_id: int,
    *,
    now: datetime | None = None,
    settings: Settings = default_settings,
) -> IssuedToken:
    """Sign a token for *identity_id* that expires after the configured lifetime."""
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    expires_at = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(identity_id),
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return IssuedToken(token=token, expires_at=expires_at)


def verify_token(token: str, *, settings: Settings = default_settings) -> TokenClaims:
    """
    Decode *token* and return its claims.

    Raises ``Unauthenticated`` when the token is malformed, signed with a
    different key or algorithm, expired, or missing a usable subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_exp": True, "require_sub": True},
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise Unauthenticated("Invalid token")
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise Unauthenticated("Invalid token")

    subject = payload.get("sub")
    identity_id = positive_int(subject) if isinstance(subject, str) else None
    if identity_id is None or identity_id > MAX_ID:
        logger.info("Rejected token with unusable subject %r", subject)
        raise Unauthenticated("Invalid token")

    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    issued_at = datetime.fromtimestamp(payload.get("iat", payload["exp"]), tz=timezone.utc)
    return TokenClaims(identity_id=identity_id, issued_at=issued_at, expires_at=expires_at)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def _compare(password: str, password_hash: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


async def hash_password(password: str, *, settings: Settings = default_settings) -> str:
    return await run_in_threadpool(_hash, password, settings.BCRYPT_ROUNDS)


async def verify_password(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(_compare, password, password_hash)
