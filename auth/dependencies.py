"""
auth/dependencies.py -- Role guard as FastAPI Depends() helpers.

The guard runs before any handler touches identity-derived data:
  1. Read the Authorization: Bearer <token> header (missing -> 401).
  2. Verify the token with the service's SECRET_KEY (invalid/expired -> 401).
  3. Compare the claims' role to the required role, if any (mismatch -> 403).
  4. Attach the verified Claims to request.state.claims and return them.

get_current_claims() accepts any authenticated role. require_role(role) builds
a dependency for one specific role. There is deliberately no "role=None"
shortcut on require_role(): a route that accepts every role says so by
depending on get_current_claims by name.

The secret comes from request.app.state.settings, set by the app factory, so
the guard holds no configuration of its own. Verification is pure: no store
access, no I/O.

Layer rule: no imports from api/, sensors/, or parcels/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.models import Claims, Role
from auth.tokens import verify_token
from core.errors import Forbidden, Unauthenticated


def bearer_token(request: Request) -> str:
    """Return the raw bearer credential or raise Unauthenticated."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Bearer token required.")
    return token.strip()


def get_current_claims(request: Request) -> Claims:
    """Require a valid token with any role.

    Use as a FastAPI dependency:
        @router.get("/profile")
        def route(claims: Claims = Depends(get_current_claims)): ...
    """
    token = bearer_token(request)
    claims = verify_token(token, request.app.state.settings.secret_key)
    request.state.claims = claims
    return claims


def require_role(role: Role) -> Callable[[Request], Claims]:
    """Build a dependency that requires a valid token whose role equals role.

    Use as a FastAPI dependency:
        @router.get("/users")
        def route(claims: Claims = Depends(require_role(Role.admin))): ...
    """
    required = Role(role)

    def _guard(request: Request) -> Claims:
        claims = get_current_claims(request)
        if claims.role is not required:
            raise Forbidden(f"Role {required.value!r} required.")
        return claims

    _guard.__name__ = f"require_{required.value}"
    return _guard
