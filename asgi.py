"""
asgi.py -- Application assembly for the AgroSense services.

One ASGI app per service. Each is independent; they share only the library
code (auth/, sensors/, parcels/) and the SECRET_KEY from the environment.

Run with:  uvicorn asgi:auth_app --port 4001
           uvicorn asgi:sensors_app --port 4002
           uvicorn asgi:ingest_app --port 4003
           uvicorn asgi:parcels_app --port 4004
           python main.py auth
"""

from api.main import (
    configure_logging,
    create_auth_app,
    create_ingest_app,
    create_parcels_app,
    create_sensors_app,
)
from core.config import get_settings

# Settings are validated here, before any app exists: a missing SECRET_KEY
# stops the process at import time.
_settings = get_settings()
configure_logging(_settings.log_level)

auth_app = create_auth_app(_settings)
sensors_app = create_sensors_app(_settings)
ingest_app = create_ingest_app(_settings)
parcels_app = create_parcels_app(_settings)
