"""
sensors/store.py -- SQLAlchemy-backed store for sensor readings (the ingest guard).

Uses SQLAlchemy Core (not ORM) so the dataclasses in sensors/models.py remain
the authoritative domain representation.

Duplicate handling:
  Every reading row has a nullable dedup_key column under a UNIQUE constraint.
  record() leaves dedup_key NULL, and NULLs never collide, so the table is
  append-only for those rows. ingest() sets dedup_key to the canonical
  timestamp; the constraint makes the INSERT itself the atomic "insert if
  absent" step. A caller that loses the race gets IntegrityError and reads the
  winner's id back. There is no check-then-insert and no application lock, so
  the guarantee holds across processes sharing the database.

Usage:
    store = ReadingStore(make_engine(settings.readings_database_url))
    result = store.ingest(reading)          # dedup by timestamp
    result = store.record(reading)          # append-only
    result = store.save(reading, DedupPolicy.timestamp)
    store.list_readings()
"""

import logging
import math
from typing import Optional

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table, UniqueConstraint, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.errors import StorageUnavailable, ValidationError, storage_errors
from sensors.models import DedupPolicy, IngestResult, SensorReading, format_timestamp, parse_timestamp

logger = logging.getLogger("agrosense.sensors")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_readings = Table(
    "sensor_readings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("temperature", Float, nullable=False),
    Column("humidity", Float, nullable=False),
    Column("rain", Boolean, nullable=False),
    Column("radiation", Float, nullable=False),
    Column("timestamp", String(32), nullable=False, index=True),
    Column("dedup_key", String(32)),  # NULL for append-only rows
    UniqueConstraint("dedup_key", name="uq_reading_dedup_key"),
)

_MEASUREMENTS = ("temperature", "humidity", "radiation")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ReadingStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        with storage_errors("creating the sensor_readings table"):
            metadata.create_all(self.engine)

    def _values(self, reading: SensorReading, dedup: bool) -> dict:
        """Map a reading onto column values. Raises ValidationError for unstorable input."""
        values = {
            "temperature": float(reading.temperature),
            "humidity": float(reading.humidity),
            "rain": bool(reading.rain),
            "radiation": float(reading.radiation),
        }
        for field in _MEASUREMENTS:
            # SQLite turns NaN into NULL and infinities do not survive JSON.
            if not math.isfinite(values[field]):
                raise ValidationError(f"{field} must be a finite number.")
        try:
            values["timestamp"] = format_timestamp(reading.timestamp)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        values["dedup_key"] = values["timestamp"] if dedup else None
        return values

    def record(self, reading: SensorReading) -> IngestResult:
        """Append a reading unconditionally and return its new id."""
        values = self._values(reading, dedup=False)
        with storage_errors("recording a reading"):
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(_readings.insert().values(**values))
            except IntegrityError as exc:
                raise ValidationError("Reading rejected by the store.", detail=str(exc.orig)) from exc
        return IngestResult(id=result.inserted_primary_key[0], created=True)

    def ingest(self, reading: SensorReading) -> IngestResult:
        """Store reading unless one with the same timestamp exists.

        Returns the stored reading's id either way; created tells the caller
        whether this call wrote it. An integrity failure with no row holding
        the timestamp is a rejected reading, not a duplicate.
        """
        values = self._values(reading, dedup=True)
        key = values["dedup_key"]
        with storage_errors("ingesting a reading"):
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(_readings.insert().values(**values))
                return IngestResult(id=result.inserted_primary_key[0], created=True)
            except IntegrityError as exc:
                # Another writer may own this timestamp; report its row.
                with self.engine.connect() as conn:
                    row = conn.execute(select(_readings.c.id).where(_readings.c.dedup_key == key)).fetchone()
                if row is None:
                    raise ValidationError("Reading rejected by the store.", detail=str(exc.orig)) from exc
        logger.debug("Duplicate reading for %s resolved to id=%s", key, row.id)
        return IngestResult(id=row.id, created=False)

    def save(self, reading: SensorReading, policy: DedupPolicy) -> IngestResult:
        """Write reading under the caller's duplicate policy."""
        if DedupPolicy(policy) is DedupPolicy.timestamp:
            return self.ingest(reading)
        return self.record(reading)

    def get_reading(self, reading_id: int) -> Optional[SensorReading]:
        with storage_errors("reading a sensor record"), self.engine.connect() as conn:
            row = conn.execute(_readings.select().where(_readings.c.id == reading_id)).fetchone()
        return _row_to_reading(row) if row is not None else None

    def list_readings(self, limit: Optional[int] = None) -> list[SensorReading]:
        """Return readings newest first (timestamp desc, then id desc)."""
        query = _readings.select().order_by(_readings.c.timestamp.desc(), _readings.c.id.desc())
        if limit is not None:
            query = query.limit(limit)
        with storage_errors("listing readings"), self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_reading(r) for r in rows]

    def count(self) -> int:
        with storage_errors("counting readings"), self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_readings)).scalar() or 0

    def ping(self) -> bool:
        try:
            with storage_errors("pinging the reading store"), self.engine.connect() as conn:
                conn.execute(select(_readings.c.id).limit(1)).fetchall()
        except StorageUnavailable:
            return False
        return True


# ---------------------------------------------------------------------------
# Row mapper (DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_reading(row) -> SensorReading:
    return SensorReading(
        id=row.id,
        temperature=row.temperature,
        humidity=row.humidity,
        rain=bool(row.rain),
        radiation=row.radiation,
        timestamp=parse_timestamp(row.timestamp),
    )
