"""
auth/sessions.py -- Server-side session store.

A session maps an opaque token (held by the client in an httpOnly cookie) to
a SessionUser projection. Rows are keyed by hash_session_token(token), never
by the raw token.

Lifetime:
  Every row carries expires_at (epoch seconds). validate() treats an expired
  row as absent and deletes it; purge_expired() sweeps the rest and is called
  periodically from the app lifespan. Only logins create rows -- anonymous
  visitors never allocate server-side session state -- so the table is
  bounded by (logins per TTL window).

The projection is captured at issue() time and is not refreshed if the user
record changes later. It ends with logout or TTL expiry.

Usage:
    sessions = SessionStore(ttl=3600)
    token = sessions.issue(user)
    who = sessions.validate(token)     # SessionUser or None
    sessions.destroy(token)            # idempotent
    sessions.purge_expired()
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table
from sqlalchemy.engine import Engine

from auth.models import SessionUser, User
from auth.tokens import generate_session_token, hash_session_token
from core.config import get_settings
from core.db import create_store_engine, storage_errors

logger = logging.getLogger("contentsite.auth")

metadata = MetaData()

_sessions = Table(
    "sessions",
    metadata,
    Column("token_hash", String(64), primary_key=True),  # HMAC-SHA256 hex
    Column("user_id", Integer, nullable=False),
    Column("username", String(255), nullable=False),
    Column("is_privileged", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("expires_at", Float, nullable=False, index=True),
)


class SessionStore:
    def __init__(
        self,
        db_url: str | None = None,
        ttl: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        settings = get_settings()
        self.ttl = ttl if ttl is not None else settings.session_ttl_seconds
        self._clock = clock
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout=settings.store_timeout_seconds,
        )
        with storage_errors("create session schema"):
            metadata.create_all(self.engine)

    def issue(self, user: User) -> str:
        """Create a session bound to the user's projection and return its raw token."""
        projection = SessionUser.from_user(user)
        token = generate_session_token()
        now = self._clock()
        with storage_errors("issue session"), self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    token_hash=hash_session_token(token),
                    user_id=projection.user_id,
                    username=projection.username,
                    is_privileged=projection.is_privileged,
                    created_at=datetime.now(timezone.utc).isoformat(),
                    expires_at=now + self.ttl,
                )
            )
            conn.commit()
        logger.info("Session issued for user_id=%d", projection.user_id)
        return token

    def validate(self, token: str | None) -> SessionUser | None:
        """Return the projection bound to token, or None if unknown or expired."""
        if not token:
            return None
        token_hash = hash_session_token(token)
        with storage_errors("validate session"), self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.token_hash == token_hash)).fetchone()
        if row is None:
            return None
        if row.expires_at <= self._clock():
            self._delete(token_hash)
            return None
        return SessionUser(
            user_id=row.user_id,
            username=row.username,
            is_privileged=bool(row.is_privileged),
        )

    def destroy(self, token: str | None) -> None:
        """Remove the session for token. Destroying an absent session is a no-op."""
        if not token:
            return
        self._delete(hash_session_token(token))

    def purge_expired(self) -> int:
        """Delete all expired sessions. Returns number of rows removed."""
        with storage_errors("purge sessions"), self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= self._clock()))
            conn.commit()
        return result.rowcount

    def _delete(self, token_hash: str) -> None:
        with storage_errors("delete session"), self.engine.connect() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.token_hash == token_hash))
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()
