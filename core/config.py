"""
core/config.py -- Centralized configuration for the AgroSense services via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly -- import get_settings() instead.

How it is wired:
  get_settings() builds Settings on first use and caches it (lru_cache), so
      every service and dependency sees the same validated instance.

  Settings fields are read from the process environment first, then from
      .env in the working directory; SECRET_KEY fills secret_key and so on.

  validate_secret_key runs once every field is resolved and checks the
      combinations a single field validator cannot see.

Security notes:
  SECRET_KEY has no default. A missing key is a hard startup failure in every
  mode, and keys shorter than 32 characters are rejected. Every service signs
  or verifies tokens with it, so a silent fallback would either lock users out
  or let anyone mint tokens.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
sensors/, or parcels/.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("agrosense.config")

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    """Service settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `database_url` from DATABASE_URL.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    # Empty string is the sentinel for "not configured"; the validator raises.
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Stores
    # ------------------------------------------------------------------

    # Relational store: users (auth service) and parcels (parcels service).
    database_url: str = f"sqlite:///{_DATA_DIR / 'agrosense.db'}"
    # Time-series store for sensor readings (sensors + ingest services).
    readings_database_url: str = f"sqlite:///{_DATA_DIR / 'readings.db'}"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = 2 * 60 * 60
    bcrypt_rounds: int = 10
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Ingestion duplicate policies
    # ------------------------------------------------------------------

    ingest_dedup_policy: Literal["append", "timestamp"] = "append"
    sensor_dedup_policy: Literal["append", "timestamp"] = "timestamp"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # Comma-separated list, e.g. CORS_ORIGINS=http://localhost:5173,http://app.local
    cors_origins: str = "http://localhost:5173,http://localhost:5174"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL: {value!r}")
        return level

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to start without a usable SECRET_KEY.

        There is no generated or literal fallback, not even with DEBUG=true:
        tokens signed by one instance must verify on every other instance.
        """
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required. Set SECRET_KEY in your environment or .env file."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        if self.debug:
            logger.warning("DEBUG is enabled. Do not run with DEBUG=true in production.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
