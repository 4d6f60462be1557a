"""
auth/store.py -- SQLAlchemy Core persistence layer for users (the credential store).

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  username uniqueness is enforced by the UNIQUE constraint, not by a lookup
  before the insert. Two concurrent registrations for the same name cannot
  both succeed; the loser gets IntegrityError, which create_user() turns into
  Conflict.

Layer rule: no imports from api/, sensors/, or parcels/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from core.errors import Conflict, StorageUnavailable, storage_errors

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.user.value),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities over an externally owned engine.

    Usage:
        engine = make_engine(settings.database_url)
        store = UserStore(engine)
        user = store.create_user(User(username="alice", role=Role.admin, hashed_password=...))
        store.get_by_username("alice")
        engine.dispose()
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        with storage_errors("creating the users table"):
            _metadata.create_all(self.engine)

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and created_at filled in.

        Raises Conflict if the username already exists.
        """
        created_at = _now_iso()
        with storage_errors("creating a user"):
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(
                        _users.insert().values(
                            username=user.username,
                            hashed_password=user.hashed_password,
                            role=Role(user.role).value,
                            created_at=created_at,
                        )
                    )
            except IntegrityError as exc:
                raise Conflict(f"Username {user.username!r} is already registered.") from exc
        return User(
            id=result.inserted_primary_key[0],
            username=user.username,
            role=Role(user.role),
            hashed_password=user.hashed_password,
            created_at=created_at,
        )

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with storage_errors("reading a user"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by username."""
        with storage_errors("listing users"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the store answers a trivial query."""
        try:
            with storage_errors("pinging the user store"), self.engine.connect() as conn:
                conn.execute(_users.select().limit(1)).fetchall()
        except StorageUnavailable:
            return False
        return True


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        role=Role(row.role),
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )
