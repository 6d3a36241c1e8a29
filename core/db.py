"""
core/db.py -- Shared SQLAlchemy engine factory and storage error translation.

Every store (users, sessions, content) builds its engine here so the same
rules apply to all of them:

  Timeouts: each storage call is bounded. SQLite gets a busy timeout (how
      long a writer waits on a locked database); network databases get a
      connect timeout. The connection pool checkout is bounded too, so a
      saturated pool fails fast instead of queueing requests forever.

  WAL mode: set per-connection for file-backed SQLite so readers proceed
      without blocking during writes.

  Errors: storage_errors() turns any SQLAlchemyError (including pool and
      driver timeouts) into core.errors.InternalError. Stores that need to
      recognise a specific failure (IntegrityError on a UNIQUE column) catch
      it inside the block before it escapes.

Layer rule: core/ is the kernel. No imports from api/, web/, auth/, content/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import SingletonThreadPool, StaticPool

from core.errors import InternalError

logger = logging.getLogger("contentsite.db")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode. PRAGMAs are per-connection in SQLite."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _is_memory_sqlite(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:")


def _is_shared_memory_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite") and "mode=memory" in db_url


def create_store_engine(db_url: str, timeout: float = 5.0) -> Engine:
    """Build an Engine whose connect, lock wait, and pool checkout are bounded by timeout.

    Only QueuePool takes pool_timeout. The in-memory SQLite pools hand out a
    connection without waiting, so they get the driver busy timeout alone.
    """
    kwargs: dict = {}
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # TestClient and FastAPI's worker pool touch the engine from many threads.
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
        if _is_memory_sqlite(db_url):
            # A private :memory: DB exists per connection; pin one connection.
            kwargs["poolclass"] = StaticPool
        elif _is_shared_memory_sqlite(db_url):
            # Named shared-cache DB: one connection per thread, same database.
            kwargs["poolclass"] = SingletonThreadPool
        else:
            kwargs["pool_timeout"] = timeout
    else:
        connect_args["connect_timeout"] = max(1, int(timeout))
        kwargs["pool_timeout"] = timeout
        kwargs["pool_pre_ping"] = True

    engine = create_engine(db_url, connect_args=connect_args, **kwargs)
    if db_url.startswith("sqlite") and not _is_memory_sqlite(db_url) and not _is_shared_memory_sqlite(db_url):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures raised inside the block into InternalError.

    Usage:
        with storage_errors("list items"):
            rows = conn.execute(...).fetchall()
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage failure during %s: %s", operation, exc)
        raise InternalError(f"{operation} failed: {exc}") from exc
