"""
auth/tokens.py -- Token codec and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (username), role, iat and exp.
       verify_token() raises Unauthenticated on any failure -- bad signature,
       malformed payload, unknown role, expiry. jose checks the signature
       before it hands back the payload, so identity fields are never read
       from an unverified token.

  Passwords: bcrypt with a fixed cost factor (BCRYPT_ROUNDS, default 10).
       _dummy_hash() enables timing equalization in the login flow so response
       time does not reveal whether a username exists.

  Secret: passed in by the caller. This module holds no key of its own; the
       services read it from core.config.get_settings() at startup.

Layer rule: no imports from api/, sensors/, or parcels/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import bcrypt
from jose import JWTError, jwt

from auth.models import Claims, Role
from core.errors import Unauthenticated

logger = logging.getLogger("agrosense.auth")

_ALGORITHM = "HS256"

# bcrypt ignores input beyond 72 bytes; newer releases reject it outright.
MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 10) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash. Never raises."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    # Same cost as real hashes so an unknown-user check takes as long as a real one.
    return hash_password("agrosense_timing_dummy", rounds=rounds)


def burn_password_check(plain: str, rounds: int = 10) -> None:
    """Run one bcrypt comparison whose result is discarded (timing equalization)."""
    verify_password(plain, _dummy_hash(rounds))


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def sign_token(
    username: str,
    role: Role,
    secret: str,
    ttl_seconds: int,
    now: datetime | None = None,
) -> str:
    """Encode a signed JWT for username/role that expires ttl_seconds after now."""
    # JWT times are whole seconds; truncate so verify(sign(...)) reproduces iat exactly.
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    payload = {
        "sub": username,
        "role": Role(role).value,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def verify_token(token: str, secret: str) -> Claims:
    """Verify a JWT and return its Claims.

    Raises Unauthenticated when the signature does not match, the payload is
    malformed or incomplete, the role is unknown, or the token has expired.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except JWTError as exc:
        # jose raises ExpiredSignatureError (a JWTError) for stale tokens.
        logger.debug("Token rejected: %s", exc.__class__.__name__)
        raise Unauthenticated("Invalid or expired token.") from exc

    username = payload.get("sub")
    if not isinstance(username, str) or not username:
        raise Unauthenticated("Invalid or expired token.")
    try:
        role = Role(payload.get("role"))
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError) as exc:
        raise Unauthenticated("Invalid or expired token.") from exc
    return Claims(username=username, role=role, issued_at=issued_at, expires_at=expires_at)
