"""
api/main.py -- FastAPI application factories for the AgroSense services.

Each service (auth, sensors, ingest, parcels) is an independent ASGI app built
by create_app(): same middleware, error envelope, logging and health endpoint,
different router and store. asgi.py instantiates them; main.py runs one.

Middleware stack (outermost to innermost):
  1. log_requests       -- one access-log line per request with latency
  2. CORSMiddleware     -- adds CORS headers for the configured browser origins
  3. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter

Lifespan owns the store's engine (connection pool): it is created at startup,
passed into the store, and disposed at shutdown. Tests inject their own engine
and keep ownership of it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.ingest import router as ingest_router
from api.routes.parcels import router as parcels_router
from api.routes.sensors import router as sensors_router
from auth.store import UserStore
from core.config import Settings, get_settings
from core.db import make_engine
from core.errors import ServiceError, Unauthenticated
from parcels.store import ParcelStore
from sensors.store import ReadingStore

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger("agrosense.api")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _error_response(status_code: int, code: str, message: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render the domain error taxonomy (core.errors) with its own status code."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    response = _error_response(exc.status_code, exc.code, exc.message, exc.detail)
    if isinstance(exc, Unauthenticated):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for HTTP exceptions, including router 404/405.

    Registered on the Starlette base class so unmatched routes are covered too.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    service: str,
    router: APIRouter,
    store_attr: str,
    store_factory: Callable[[Engine], Any],
    db_url: str,
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    """Build one service app.

    Args:
        service:       Service name used in logs and /health.
        router:        The service's routes.
        store_attr:    app.state attribute the store is published under.
        store_factory: Store class (or callable) taking an Engine.
        db_url:        URL used to build the engine when none is injected.
        settings:      Defaults to get_settings().
        engine:        Pre-built engine; the caller keeps ownership.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Startup
        logger.info("%s service starting up", service)
        owned = engine is None
        store_engine = make_engine(db_url) if owned else engine
        try:
            setattr(app.state, store_attr, store_factory(store_engine))
        except ServiceError:
            logger.error("%s service could not open its store; refusing to start", service)
            if owned:
                store_engine.dispose()
            raise
        logger.info("%s store initialized (%s)", service, store_engine.url.get_backend_name())

        yield

        # Shutdown
        if owned:
            store_engine.dispose()
        logger.info("%s service shutdown complete", service)

    app = FastAPI(
        title=f"AgroSense {service.capitalize()} Service API",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service

    # ------------------------------------------------------------------
    # Middleware stack
    # ------------------------------------------------------------------

    # add_middleware() wraps the stack, so the last one added runs first.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = limiter

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %s %d %.1fms %s",
            service,
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(router, tags=[service.capitalize()])

    # Defined on the app (not the router) so every service answers it and no
    # rate limit applies -- probes must not be throttled.
    @app.get("/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness plus a store connectivity check."""
        store = getattr(request.app.state, store_attr, None)
        database_ok = store is not None and store.ping()
        return HealthResponse(
            status="healthy" if database_ok else "degraded",
            service=service,
            version=API_VERSION,
            components={"app": "ok", "database": "ok" if database_ok else "error"},
        )

    return app


# ---------------------------------------------------------------------------
# Service factories
# ---------------------------------------------------------------------------


def create_auth_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    return create_app("auth", auth_router, "user_store", UserStore, settings.database_url, settings, engine)


def create_sensors_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    return create_app(
        "sensors", sensors_router, "reading_store", ReadingStore, settings.readings_database_url, settings, engine
    )


def create_ingest_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    return create_app(
        "ingest", ingest_router, "reading_store", ReadingStore, settings.readings_database_url, settings, engine
    )


def create_parcels_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    return create_app("parcels", parcels_router, "parcel_store", ParcelStore, settings.database_url, settings, engine)


SERVICES: dict[str, tuple[Callable[..., FastAPI], int]] = {
    "auth": (create_auth_app, 4001),
    "sensors": (create_sensors_app, 4002),
    "ingest": (create_ingest_app, 4003),
    "parcels": (create_parcels_app, 4004),
}
