"""
auth/service.py -- Auth core: registration, login, profile.

Functions take their collaborators (store, secret, lifetimes) as arguments so
every service can call them with its own configuration and tests can call
them without an HTTP stack.

Failure contract:
  register -> ValidationError (bad input), Conflict (username taken)
  login    -> NotFound (unknown username), Unauthorized (wrong password)
  profile  -> never fails; it reads claims the role guard already verified

Plaintext passwords are hashed immediately and never logged or stored.
"""

from __future__ import annotations

import logging

from auth.models import Claims, Role, User
from auth.store import UserStore
from auth.tokens import MAX_PASSWORD_BYTES, burn_password_check, hash_password, sign_token, verify_password
from core.errors import NotFound, Unauthorized, ValidationError

logger = logging.getLogger("agrosense.auth")

DEFAULT_TOKEN_TTL = 2 * 60 * 60


def _validate_credentials(username: str, password: str) -> None:
    if not username or not username.strip():
        raise ValidationError("Username must not be empty.")
    if not password:
        raise ValidationError("Password must not be empty.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


def register(
    store: UserStore,
    username: str,
    password: str,
    role: Role | str = Role.user,
    rounds: int = 10,
) -> User:
    """Create a user with a bcrypt-hashed password and return it.

    Input is validated before the store is touched. Uniqueness is left to the
    store's constraint, which raises Conflict for a taken username.
    """
    _validate_credentials(username, password)
    try:
        parsed_role = Role.parse(role)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    user = store.create_user(
        User(
            username=username.strip(),
            role=parsed_role,
            hashed_password=hash_password(password, rounds=rounds),
        )
    )
    logger.info("Registered user %s (role=%s)", user.username, user.role.value)
    return user


def login(
    store: UserStore,
    username: str,
    password: str,
    secret: str,
    ttl_seconds: int = DEFAULT_TOKEN_TTL,
    rounds: int = 10,
) -> str:
    """Check credentials and return a signed token carrying {username, role}.

    An unknown username still pays for one bcrypt comparison so the two
    failure paths take the same time; they differ only in status code.
    """
    user = store.get_by_username(username)
    if user is None:
        burn_password_check(password, rounds=rounds)
        logger.info("Login failed: unknown user")
        raise NotFound("User not found.")
    if not verify_password(password, user.hashed_password):
        logger.info("Login failed: bad password for %s", user.username)
        raise Unauthorized("Invalid password.")
    logger.info("Login succeeded for %s", user.username)
    return sign_token(user.username, user.role, secret, ttl_seconds)


def profile(claims: Claims) -> dict:
    """Return the public identity of an already verified token."""
    return claims.as_profile()


def list_users(store: UserStore) -> list[User]:
    return store.list_users()
