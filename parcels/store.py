"""
parcels/store.py -- SQLAlchemy-backed persistence for parcels with soft delete.

Pattern: Repository + Data Mapper. ParcelStore is the repository; _row_to_parcel
is the mapper. Route handlers never touch SQL directly.

Lifecycle:
  create_parcel() inserts an active parcel.
  soft_delete() flips deleted to true and reads the row back inside one
  transaction. The UPDATE is unconditional on the current flag, so a second
  delete matches the same row and returns it unchanged. Only an id that was
  never created raises NotFound.
  list_parcels(active) partitions strictly on the flag. Order is name
  ascending, then creation order via the monotonic seq column.

Security: all queries use bound parameters. No f-strings in SQL.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, false, true
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.errors import Conflict, NotFound, StorageUnavailable, ValidationError, storage_errors
from parcels.models import Parcel

logger = logging.getLogger("agrosense.parcels")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_parcels = Table(
    "parcels",
    metadata,
    # seq records creation order for the name tie-break; id is the public key.
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String(36), nullable=False, unique=True),
    Column("name", Text, nullable=False),
    Column("location", Text, nullable=False),
    Column("deleted", Boolean, nullable=False, server_default=false()),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_parcel_id(parcel_id: str) -> str:
    """Return the canonical lowercase UUID form. Raises ValidationError if malformed."""
    try:
        return str(uuid.UUID(str(parcel_id)))
    except ValueError as exc:
        raise ValidationError(f"Parcel id {parcel_id!r} is not a valid UUID.") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ParcelStore:
    """Repository for Parcel entities over an externally owned engine.

    Usage:
        store = ParcelStore(make_engine(settings.database_url))
        parcel = store.create_parcel("North", "Yucatan, MX")
        store.soft_delete(parcel.id)
        store.list_parcels(active=False)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        with storage_errors("creating the parcels table"):
            metadata.create_all(self.engine)

    def create_parcel(self, name: str, location: str, parcel_id: Optional[str] = None) -> Parcel:
        """Insert an active parcel and return it.

        Raises ValidationError for blank name/location or a malformed id, and
        Conflict if a caller-supplied id is already taken.
        """
        name = (name or "").strip()
        location = (location or "").strip()
        if not name:
            raise ValidationError("Parcel name must not be empty.")
        if not location:
            raise ValidationError("Parcel location must not be empty.")
        new_id = normalize_parcel_id(parcel_id) if parcel_id else str(uuid.uuid4())

        created_at = _now_iso()
        with storage_errors("creating a parcel"):
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        _parcels.insert().values(
                            id=new_id,
                            name=name,
                            location=location,
                            deleted=False,
                            created_at=created_at,
                        )
                    )
            except IntegrityError as exc:
                raise Conflict(f"Parcel {new_id} already exists.") from exc
        logger.info("Created parcel %s", new_id)
        return Parcel(id=new_id, name=name, location=location, deleted=False, created_at=created_at)

    def get_parcel(self, parcel_id: str) -> Optional[Parcel]:
        """Fetch one parcel by id regardless of its deleted flag. None if absent."""
        try:
            key = normalize_parcel_id(parcel_id)
        except ValidationError:
            return None
        with storage_errors("reading a parcel"), self.engine.connect() as conn:
            row = conn.execute(_parcels.select().where(_parcels.c.id == key)).fetchone()
        return _row_to_parcel(row) if row is not None else None

    def soft_delete(self, parcel_id: str) -> Parcel:
        """Mark a parcel deleted and return it. Idempotent for existing ids.

        Raises NotFound only when the id does not exist at all.
        """
        try:
            key = normalize_parcel_id(parcel_id)
        except ValidationError as exc:
            # A malformed id can never have been created.
            raise NotFound(f"Parcel {parcel_id} not found.") from exc
        with storage_errors("deleting a parcel"), self.engine.begin() as conn:
            conn.execute(_parcels.update().where(_parcels.c.id == key).values(deleted=True))
            row = conn.execute(_parcels.select().where(_parcels.c.id == key)).fetchone()
        if row is None:
            raise NotFound(f"Parcel {key} not found.")
        logger.info("Soft-deleted parcel %s", key)
        return _row_to_parcel(row)

    def list_parcels(self, active: bool = True) -> list[Parcel]:
        """Return active (deleted=false) or deleted parcels, by name then creation order."""
        flag = false() if active else true()
        with storage_errors("listing parcels"), self.engine.connect() as conn:
            rows = conn.execute(
                _parcels.select()
                .where(_parcels.c.deleted == flag)
                .order_by(_parcels.c.name, _parcels.c.seq)
            ).fetchall()
        return [_row_to_parcel(r) for r in rows]

    def ping(self) -> bool:
        try:
            with storage_errors("pinging the parcel store"), self.engine.connect() as conn:
                conn.execute(_parcels.select().limit(1)).fetchall()
        except StorageUnavailable:
            return False
        return True


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_parcel(row) -> Parcel:
    return Parcel(
        id=row.id,
        name=row.name,
        location=row.location,
        deleted=bool(row.deleted),
        created_at=row.created_at,
    )
