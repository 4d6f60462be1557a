"""
api/routes/sensors.py -- Simulated sensor service.

Routes:
  GET /sensor-data -- generate one reading and store it under SENSOR_DEDUP_POLICY

The generator stamps readings with the current time, so two requests in the
same microsecond (or a client retry of the same reading) collapse onto one
stored record under the default timestamp policy.
"""

from fastapi import APIRouter, Request

from api.models import ReadingResponse, SensorDataResponse
from sensors.generator import random_reading
from sensors.models import DedupPolicy
from sensors.store import ReadingStore

router = APIRouter()


@router.get("/sensor-data", response_model=SensorDataResponse)
def sensor_data(request: Request) -> SensorDataResponse:
    """Generate a simulated reading, store it and return it with its id."""
    store: ReadingStore = request.app.state.reading_store
    policy = DedupPolicy(request.app.state.settings.sensor_dedup_policy)
    reading = random_reading()
    result = store.save(reading, policy)
    reading.id = result.id
    return SensorDataResponse(
        status="created" if result.created else "duplicate",
        id=result.id,
        reading=ReadingResponse.from_reading(reading),
    )
