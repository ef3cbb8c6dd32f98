"""Password hashing and session token helpers.

Both halves are stateless: the Argon2 hasher holds only its cost parameters,
and token functions take the signing secret as an argument instead of reading
configuration themselves.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

SESSION_TOKEN_TTL = timedelta(days=7)
TOKEN_TYPE = "access"

_password_hasher = PasswordHasher()


class TokenError(Exception):
    """Base class for session token verification failures."""


class ExpiredTokenError(TokenError):
    """Token signature is valid but `exp` is in the past."""


class InvalidTokenError(TokenError):
    """Token is malformed, signed with another key, or carries bad claims."""


def hash_password(password: str) -> str:
    """Return an Argon2id encoded hash; every call uses a fresh random salt."""
    return _password_hasher.hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    """Check `password` against an encoded hash. Malformed hashes never raise."""
    if not stored_hash:
        return False
    try:
        return _password_hasher.verify(stored_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


# Verified against when the email is unknown so both login failures cost the same.
DUMMY_PASSWORD_HASH = hash_password("not-a-real-password")


def issue_token(
    user_id: UUID | str,
    *,
    secret: str,
    algorithm: str = "HS256",
    ttl: timedelta = SESSION_TOKEN_TTL,
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + ttl).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, *, secret: str, algorithm: str = "HS256") -> str:
    """Verify signature, expiry and claims; return the subject (identity id)."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("Token is invalid") from exc

    if payload.get("type") != TOKEN_TYPE:
        raise InvalidTokenError("Invalid token type")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise InvalidTokenError("Invalid token subject")
    return subject
