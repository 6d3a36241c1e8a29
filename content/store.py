"""
content/store.py -- SQLAlchemy-backed persistence layer for site content.

Uses SQLAlchemy Core (not ORM) so the dataclasses in content/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. ContentStore is the repository; _row_to_item
is the mapper. Route handlers never touch SQL directly.

Visibility:
  An item is live while deleted_at IS NULL and a tombstone once it is set.
  Every read path filters on deleted_at, so a tombstone is indistinguishable
  from an id that never existed. Nothing here clears deleted_at or removes a
  row; tombstone_item() only moves live -> tombstoned.

external_items is a reserved table for content pulled from outside feeds.
It is created with the schema and otherwise unused.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ContentStore("sqlite:///:memory:")
    item_id = store.create_item(item)
    items = store.list_live()
    item = store.get_live(item_id)      # raises NotFound when missing or tombstoned
    store.tombstone_item(item_id)
    store.close()
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from content.models import ContentItem
from core.config import get_settings
from core.db import create_store_engine, storage_errors
from core.errors import InternalError, NotFound

logger = logging.getLogger("contentsite.content")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_items = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("pictures", Text, nullable=False),  # JSON array serialized as text
    Column("title_canonical", String(255), nullable=False),
    Column("title_localized", String(255), nullable=False),
    Column("description_canonical", Text, nullable=False),
    Column("description_localized", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
    Column("deleted_at", String(32)),  # NULL = live
)

# Reserved: items imported from outside feeds.
_external_items = Table(
    "external_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255)),
    Column("description", Text),
    Column("url", Text),
    Column("published_at", String(32)),
    Column("source", String(255)),
    Column("user_id", Integer),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ContentStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.database_url,
            timeout=settings.store_timeout_seconds,
        )
        with storage_errors("create content schema"):
            metadata.create_all(self.engine)

    def list_live(self) -> list[ContentItem]:
        """Return every live item in insertion order.

        No pagination and no upper bound: the full live set is returned.
        """
        with storage_errors("list items"), self.engine.connect() as conn:
            rows = conn.execute(_items.select().where(_items.c.deleted_at.is_(None)).order_by(_items.c.id)).fetchall()
        return [_row_to_item(r) for r in rows]

    def get_live(self, item_id: int) -> ContentItem:
        """Return the live item with this id.

        Raises NotFound both when no row has this id and when the row is a
        tombstone. Callers cannot tell the two apart.
        """
        with storage_errors("get item"), self.engine.connect() as conn:
            row = conn.execute(
                _items.select().where((_items.c.id == item_id) & (_items.c.deleted_at.is_(None)))
            ).fetchone()
        if row is None:
            raise NotFound(f"item {item_id}")
        return _row_to_item(row)

    def create_item(self, item: ContentItem) -> int:
        """Insert a new live item and return its ID. Operator use only (see main.py)."""
        with storage_errors("create item"), self.engine.connect() as conn:
            result = conn.execute(
                _items.insert().values(
                    pictures=json.dumps(item.pictures),
                    title_canonical=item.title_canonical,
                    title_localized=item.title_localized,
                    description_canonical=item.description_canonical,
                    description_localized=item.description_localized,
                    created_at=_now_iso(),
                    deleted_at=item.deleted_at,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def tombstone_item(self, item_id: int) -> bool:
        """Mark a live item as deleted. Returns False if it is missing or already a tombstone.

        The first deletion timestamp is kept; a second call changes nothing.
        """
        with storage_errors("tombstone item"), self.engine.connect() as conn:
            result = conn.execute(
                _items.update()
                .where((_items.c.id == item_id) & (_items.c.deleted_at.is_(None)))
                .values(deleted_at=_now_iso())
            )
            conn.commit()
        if result.rowcount > 0:
            logger.info("Item %d tombstoned", item_id)
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_item(row) -> ContentItem:
    # Rows written outside create_item() may not satisfy the model invariants.
    try:
        return ContentItem(
            id=row.id,
            pictures=json.loads(row.pictures),
            title_canonical=row.title_canonical,
            title_localized=row.title_localized,
            description_canonical=row.description_canonical,
            description_localized=row.description_localized,
            created_at=row.created_at,
            updated_at=row.updated_at,
            deleted_at=row.deleted_at,
        )
    except (TypeError, ValueError) as exc:
        raise InternalError(f"item {row.id} is malformed: {exc}") from exc
