"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as content/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and dependency
code never touches SQL directly.

Uniqueness:
  users.username carries a UNIQUE constraint. create_user() issues a single
  INSERT and treats the constraint violation as the DuplicateUsername signal.
  No lookup precedes the insert: two concurrent signups for the same name
  race on the constraint, and exactly one wins.

Security:
  All queries use bound parameters. No f-strings in SQL.

audit_records is a reserved table for a future user-action history. The
schema is created with the rest; no method reads or writes it.

Layer rule: no imports from api/, web/, or content/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, ForeignKey, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.config import get_settings
from core.db import create_store_engine, storage_errors
from core.errors import DuplicateUsername

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("is_privileged", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

# Reserved: history of user actions. Not written or read by any flow.
_audit_records = Table(
    "audit_records",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id")),
    Column("action", String(100), nullable=False),
    Column("input", Text),
    Column("occurred_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        uid = store.create_user(User(username="alice", hashed_password=hash_password("secret1")))
        user = store.get_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout=settings.store_timeout_seconds,
        )
        with storage_errors("create auth schema"):
            metadata.create_all(self.engine)

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateUsername if the username is already taken (including
        when a concurrent request inserted it a moment earlier).
        """
        with storage_errors("create user"), self.engine.connect() as conn:
            try:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        hashed_password=user.hashed_password,
                        is_privileged=user.is_privileged,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
            except IntegrityError as exc:
                conn.rollback()
                raise DuplicateUsername(user.username) from exc
            return result.inserted_primary_key[0]

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with storage_errors("get user by username"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with storage_errors("get user by id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self, username: str | None = None) -> int:
        """Return the number of users, optionally only those with the given username."""
        query = select(func.count()).select_from(_users)
        if username is not None:
            query = query.where(_users.c.username == username)
        with storage_errors("count users"), self.engine.connect() as conn:
            result = conn.execute(query).scalar()
        return result or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        is_privileged=bool(row.is_privileged),
        created_at=row.created_at,
    )
