"""
sensors/generator.py -- Simulated field sensor.

Produces plausible readings for the sensors service's /sensor-data endpoint:
temperature 20-30 C, humidity 40-70 %, rain on roughly one sample in five,
radiation 200-1000 W/m2, stamped with the current UTC time.
"""

import random
from datetime import datetime, timezone
from typing import Optional

from sensors.models import SensorReading


def random_reading(rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> SensorReading:
    """Return a new simulated reading. Pass rng/now for reproducible output."""
    rng = rng or random.Random()
    return SensorReading(
        temperature=round(20 + rng.random() * 10, 2),
        humidity=round(40 + rng.random() * 30, 2),
        rain=rng.random() > 0.8,
        radiation=float(round(200 + rng.random() * 800)),
        timestamp=now or datetime.now(timezone.utc),
    )
