"""
API request and response models for the AgroSense REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/, sensors/ and
parcels/, which own the internal domain representation. Route handlers map
between the two.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Role, User
from auth.tokens import MAX_PASSWORD_BYTES
from parcels.models import Parcel
from sensors.models import SensorReading, to_utc

# Spellings the field devices have historically sent for the rain flag.
_RAIN_TRUE = {"si", "sí", "yes", "true", "1"}
_RAIN_FALSE = {"no", "false", "0"}


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    service: str
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_BYTES)
    role: Role = Role.user


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, username=user.username, role=user.role)


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "user registered"
    user: UserResponse


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int


class ProfileResponse(BaseModel):
    """Response for GET /profile -- the verified claims, nothing from the store."""

    model_config = ConfigDict(frozen=True)

    username: str
    role: Role


# ---------------------------------------------------------------------------
# Sensor readings
# ---------------------------------------------------------------------------


class ReadingCreate(BaseModel):
    """Request body for POST /ingest.

    Numeric fields also accept numeric strings ("25.5"). timestamp defaults to
    the time of ingestion when omitted.
    """

    model_config = ConfigDict(allow_inf_nan=False)

    temperature: float
    humidity: float
    rain: bool = False
    radiation: float
    timestamp: Optional[datetime] = None

    @field_validator("rain", mode="before")
    @classmethod
    def normalize_rain(cls, value):
        """Map the textual flags sent by older field devices onto a bool."""
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _RAIN_TRUE:
                return True
            if lowered in _RAIN_FALSE:
                return False
        return value

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Shift to UTC here so an out-of-range instant is a 422, not a store error."""
        return to_utc(value) if value is not None else None


class ReadingResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    temperature: float
    humidity: float
    rain: bool
    radiation: float
    timestamp: datetime

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "ReadingResponse":
        return cls(
            id=reading.id,
            temperature=reading.temperature,
            humidity=reading.humidity,
            rain=reading.rain,
            radiation=reading.radiation,
            timestamp=reading.timestamp,
        )


class IngestResponse(BaseModel):
    """Response for POST /ingest.

    status is "created" when this call stored the reading and "duplicate" when
    a reading with the same timestamp already existed (id is then the stored one).
    """

    model_config = ConfigDict(frozen=True)

    status: str
    id: int


class SensorDataResponse(BaseModel):
    """Response for GET /sensor-data -- the generated reading and where it landed."""

    model_config = ConfigDict(frozen=True)

    status: str
    id: int
    reading: ReadingResponse


# ---------------------------------------------------------------------------
# Parcels
# ---------------------------------------------------------------------------


class ParcelCreate(BaseModel):
    """Request body for POST /parcelas. id is optional; the server generates one."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=255)
    id: Optional[UUID] = None


class ParcelResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    location: str
    deleted: bool
    created_at: str

    @classmethod
    def from_parcel(cls, parcel: Parcel) -> "ParcelResponse":
        return cls(
            id=parcel.id,
            name=parcel.name,
            location=parcel.location,
            deleted=parcel.deleted,
            created_at=parcel.created_at,
        )


class ParcelDeletedResponse(BaseModel):
    """Response for DELETE /parcelas/{id}."""

    model_config = ConfigDict(frozen=True)

    deleted: ParcelResponse
