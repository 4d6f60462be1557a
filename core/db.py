"""
core/db.py -- Engine (connection pool) construction shared by all stores.

Stores never build their own engine. Each service lifespan calls make_engine()
once per store URL, passes the engine into the store constructor and disposes
it at shutdown, so pool ownership is explicit and scoped to the process.

SQLAlchemy provides the database-agnostic abstraction: swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.
"""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url with the SQLite settings the stores rely on."""
    url = make_url(db_url)
    connect_args: dict = {}
    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite:
        # FastAPI runs sync handlers in a thread pool; connections cross threads.
        connect_args["check_same_thread"] = False
        # Concurrent writers wait on the file lock instead of failing at once.
        connect_args["timeout"] = 30
        database = url.database or ""
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(db_url, connect_args=connect_args, pool_pre_ping=not is_sqlite)
    if is_sqlite:
        event.listen(engine, "connect", _set_wal_mode)
    return engine
