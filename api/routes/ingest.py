"""
api/routes/ingest.py -- Reading ingestion service.

Routes:
  POST /ingest   -- store one reading under INGEST_DEDUP_POLICY
  GET  /records  -- list stored readings, newest first

The duplicate policy is configuration, not code: the default "append" keeps
every submission for historical listing, "timestamp" keeps one reading per
timestamp and answers repeats with the stored id.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Query, Request

from api.models import IngestResponse, ReadingCreate, ReadingResponse
from sensors.models import DedupPolicy, SensorReading
from sensors.store import ReadingStore

router = APIRouter()


@router.post("/ingest", response_model=IngestResponse)
def ingest(request: Request, body: ReadingCreate) -> IngestResponse:
    """Store a reading and return its id."""
    store: ReadingStore = request.app.state.reading_store
    policy = DedupPolicy(request.app.state.settings.ingest_dedup_policy)
    reading = SensorReading(
        temperature=body.temperature,
        humidity=body.humidity,
        rain=body.rain,
        radiation=body.radiation,
        timestamp=body.timestamp or datetime.now(timezone.utc),
    )
    result = store.save(reading, policy)
    return IngestResponse(status="created" if result.created else "duplicate", id=result.id)


@router.get("/records", response_model=list[ReadingResponse])
def list_records(
    request: Request,
    limit: Optional[int] = Query(default=None, ge=1, le=10000),
) -> list[ReadingResponse]:
    """Return stored readings sorted by timestamp, newest first."""
    store: ReadingStore = request.app.state.reading_store
    return [ReadingResponse.from_reading(r) for r in store.list_readings(limit=limit)]
