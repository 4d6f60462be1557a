"""
sensors/models.py -- Domain dataclasses for sensor readings.

These are pure data containers with zero logic beyond timestamp
normalisation. Persistence and the duplicate policies live in sensors/store.py.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

# Fixed-width UTC form. Lexicographic order equals chronological order, and two
# instants that are equal always produce the same dedup key.
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class DedupPolicy(str, Enum):
    """How a store treats a second reading with an already-seen timestamp.

    append    -- keep every submission (historical, append-only listing)
    timestamp -- at most one reading per timestamp; later submissions get the
                 stored reading's id back
    """

    append = "append"
    timestamp = "timestamp"


@dataclass
class SensorReading:
    """One environmental sample.

    timestamp is the logical dedup key under DedupPolicy.timestamp.
    id is None before the record is written to the database.
    """

    temperature: float
    humidity: float
    rain: bool
    radiation: float
    timestamp: datetime
    id: Optional[int] = None


@dataclass(frozen=True)
class IngestResult:
    """Outcome of a write: the stored id and whether this call created it."""

    id: int
    created: bool


def to_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime. Naive values are taken as UTC.

    Raises ValueError when the instant falls outside datetime's range once
    shifted to UTC (e.g. 0001-01-01T00:00:00+01:00).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as exc:
        raise ValueError(f"Timestamp {value.isoformat()} is out of range in UTC.") from exc


def format_timestamp(value: datetime) -> str:
    utc = to_utc(value)
    # strftime("%Y") does not zero-pad years below 1000.
    return f"{utc.year:04d}-{utc:%m-%dT%H:%M:%S.%f}Z"


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
