#!/usr/bin/env python3
"""
AgroSense -- run one of the field-monitoring services.

Usage:
  python main.py auth                 # registration, login, profile   (port 4001)
  python main.py sensors              # simulated sensor generator      (port 4002)
  python main.py ingest               # reading ingestion and listing   (port 4003)
  python main.py parcels              # parcels with soft delete        (port 4004)
  python main.py parcels --port 8080 --host 127.0.0.1

Environment variables:
  SECRET_KEY             Required. Token signing key, at least 32 characters.
  DATABASE_URL           Users and parcels store (default: SQLite under data/).
  READINGS_DATABASE_URL  Sensor readings store (default: SQLite under data/).
  See core/config.py for the full list.
"""

import argparse
import logging
import sys

import uvicorn
from pydantic import ValidationError

from api.main import SERVICES, configure_logging
from core.config import get_settings

logger = logging.getLogger("agrosense.main")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="agrosense",
        description="Run one AgroSense service.",
    )
    parser.add_argument("service", choices=sorted(SERVICES), help="Service to run.")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0).")
    parser.add_argument("--port", type=int, default=None, help="Port (default: the service's own port).")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    try:
        settings = get_settings()
    except ValidationError as exc:
        # Missing or short SECRET_KEY lands here; the message names the variable.
        print(f"  [!] Invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    factory, default_port = SERVICES[args.service]
    port = args.port or default_port
    logger.info("%s service listening on %s:%d (OpenAPI docs at /docs)", args.service, args.host, port)
    uvicorn.run(factory(settings), host=args.host, port=port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
