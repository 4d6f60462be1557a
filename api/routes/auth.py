"""
api/routes/auth.py -- Auth service endpoints.

Routes:
  POST /register  -- create a user (public)
  POST /login     -- exchange credentials for a bearer token (public, rate limited)
  GET  /profile   -- verified claims of the presented token (any role)
  GET  /users     -- list registered users (admin only)

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT, default 10/minute).
  Login responses carry Cache-Control: no-store so tokens are not cached.
  Passwords are hashed in auth.service and never echoed back or logged.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from auth import service
from auth.dependencies import get_current_claims, require_role
from auth.models import Claims, Role
from auth.store import UserStore

# Auth policy:
# - POST /register: public -- open self-registration
# - POST /login:    public -- login endpoint must be unauthenticated
# - GET  /profile:  any authenticated role (get_current_claims)
# - GET  /users:    admin only (require_role(Role.admin))
router = APIRouter()


@router.post("/register", response_model=RegisterResponse)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Register a user. 409 if the username is taken."""
    settings = request.app.state.settings
    user_store: UserStore = request.app.state.user_store
    user = service.register(
        user_store,
        body.username,
        body.password,
        body.role,
        rounds=settings.bcrypt_rounds,
    )
    return RegisterResponse(user=UserResponse.from_user(user))


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password and return a bearer token.

    404 for an unknown username, 401 for a wrong password. Both paths cost
    one bcrypt comparison.
    """
    settings = request.app.state.settings
    user_store: UserStore = request.app.state.user_store
    token = service.login(
        user_store,
        body.username,
        body.password,
        settings.secret_key,
        ttl_seconds=settings.token_expire_seconds,
        rounds=settings.bcrypt_rounds,
    )
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=settings.token_expire_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/profile", response_model=ProfileResponse)
def profile(claims: Claims = Depends(get_current_claims)) -> ProfileResponse:
    """Return the username and role carried by the presented token."""
    return ProfileResponse(**service.profile(claims))


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, claims: Claims = Depends(require_role(Role.admin))) -> list[UserResponse]:
    """List all registered users. Admin only."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in service.list_users(user_store)]
