"""
api/limiter.py -- The one slowapi Limiter every AgroSense service mounts.

Counters live in process memory, keyed by client IP. Route modules decorate
with @limiter.limit(...); api/main.py publishes it on app.state for
SlowAPIMiddleware. Tests switch it off with limiter.enabled = False.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Limit string for POST /login, read from LOGIN_RATE_LIMIT at check time."""
    return get_settings().login_rate_limit
