"""
tests/conftest.py -- Shared test fixtures for the AgroSense services.

This module provides:
  - settings:       a Settings instance with a test SECRET_KEY and fast bcrypt
  - *_engine:       file-backed SQLite engines in tmp_path (one per test)
  - *_store:        stores over those engines
  - *_client:       TestClients for each service app with the engine injected

Design: file-backed SQLite in tmp_path rather than shared-memory URIs. The
ingest tests submit readings from several threads at once, and shared-cache
in-memory databases fail fast with "table is locked" under concurrent
writers, whereas file databases with WAL wait on the lock like a real server.

SECRET_KEY must be in the environment before any application import so the
get_settings() singleton (used by the login rate limit) validates.
"""

from __future__ import annotations

import os
from collections.abc import Generator

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.limiter import limiter
from api.main import create_auth_app, create_ingest_app, create_parcels_app, create_sensors_app
from auth.store import UserStore
from core.config import Settings
from core.db import make_engine
from parcels.store import ParcelStore
from sensors.store import ReadingStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"

# Login is rate limited per client IP; every TestClient request comes from the
# same address, so the limiter would trip across test modules.
limiter.enabled = False


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        bcrypt_rounds=4,
        database_url=f"sqlite:///{tmp_path / 'agrosense.db'}",
        readings_database_url=f"sqlite:///{tmp_path / 'readings.db'}",
    )


# ---------------------------------------------------------------------------
# Engines and stores
# ---------------------------------------------------------------------------


@pytest.fixture
def db_engine(settings: Settings) -> Generator[Engine, None, None]:
    engine = make_engine(settings.database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def readings_engine(settings: Settings) -> Generator[Engine, None, None]:
    engine = make_engine(settings.readings_database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def user_store(db_engine: Engine) -> UserStore:
    return UserStore(db_engine)


@pytest.fixture
def parcel_store(db_engine: Engine) -> ParcelStore:
    return ParcelStore(db_engine)


@pytest.fixture
def reading_store(readings_engine: Engine) -> ReadingStore:
    return ReadingStore(readings_engine)


# ---------------------------------------------------------------------------
# Service clients
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_client(settings: Settings, db_engine: Engine) -> Generator[TestClient, None, None]:
    with TestClient(create_auth_app(settings, engine=db_engine)) as client:
        yield client


@pytest.fixture
def sensors_client(settings: Settings, readings_engine: Engine) -> Generator[TestClient, None, None]:
    with TestClient(create_sensors_app(settings, engine=readings_engine)) as client:
        yield client


@pytest.fixture
def ingest_client(settings: Settings, readings_engine: Engine) -> Generator[TestClient, None, None]:
    with TestClient(create_ingest_app(settings, engine=readings_engine)) as client:
        yield client


@pytest.fixture
def parcels_client(settings: Settings, db_engine: Engine) -> Generator[TestClient, None, None]:
    with TestClient(create_parcels_app(settings, engine=db_engine)) as client:
        yield client
