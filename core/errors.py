"""
core/errors.py -- Error taxonomy shared by every AgroSense service.

Each error carries a machine-checkable code and the HTTP status the API layer
renders it with. Domain code raises these; api/main.py turns them into the
common {"error": {"code", "message", "detail"}} envelope.

  ValidationError     422  malformed input, rejected before any store mutation
  Unauthenticated     401  missing, malformed, tampered or expired token
  Unauthorized        401  credentials did not match (login)
  Forbidden           403  valid token, wrong role
  NotFound            404  referenced entity absent
  Conflict            409  unique key already taken
  StorageUnavailable  500  backing store unreachable or query failure

Layer rule: core/ is the kernel. No imports from api/, auth/, sensors/, parcels/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger("agrosense.storage")


class ServiceError(Exception):
    """Base class for errors that map to a structured client response."""

    code = "internal_error"
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(ServiceError):
    code = "validation_error"
    status_code = 422
    default_message = "Request validation failed."


class Unauthenticated(ServiceError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Authentication required."


class Unauthorized(ServiceError):
    code = "bad_credentials"
    status_code = 401
    default_message = "Invalid password."


class Forbidden(ServiceError):
    code = "forbidden"
    status_code = 403
    default_message = "Insufficient role."


class NotFound(ServiceError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found."


class Conflict(ServiceError):
    code = "conflict"
    status_code = 409
    default_message = "Resource already exists."


class StorageUnavailable(ServiceError):
    code = "storage_unavailable"
    status_code = 500
    default_message = "The backing store is unavailable."


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Translate store failures into StorageUnavailable.

    IntegrityError passes through untouched: unique-constraint conflicts are
    part of the write contract (dedup, duplicate username) and each store
    handles them itself. Everything else from SQLAlchemy is reported once and
    surfaced to the caller; there are no retries here.
    """
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        logger.error("Storage failure while %s: %s", action, exc.__class__.__name__)
        raise StorageUnavailable(f"Storage failure while {action}.") from exc
