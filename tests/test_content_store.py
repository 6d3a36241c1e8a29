"""
tests/test_content_store.py -- Unit tests for ContentStore and the ContentItem model.

Covers:
  - Live/tombstoned visibility for list and single reads
  - Insertion order of list_live()
  - Tombstoning is one-way and keeps the first timestamp
  - Malformed stored rows surface as InternalError
  - Reserved tables exist in the schema
"""

from __future__ import annotations

import pytest
from sqlalchemy import inspect, text

from content.models import ContentItem
from core.errors import InternalError, NotFound


def _item(title: str = "Tower", **overrides) -> ContentItem:
    fields = dict(
        pictures=["a.jpg", "b.jpg"],
        title_canonical=title,
        title_localized=f"{title}-l10n",
        description_canonical="desc",
        description_localized="desc-l10n",
    )
    fields.update(overrides)
    return ContentItem(**fields)


def test_live_and_tombstoned_visibility(stores) -> None:
    a = stores.content.create_item(_item("A"))
    b = stores.content.create_item(_item("B"))
    c = stores.content.create_item(_item("C"))
    assert stores.content.tombstone_item(b) is True

    assert [i.id for i in stores.content.list_live()] == [a, c]
    assert stores.content.get_live(a).title_canonical == "A"
    with pytest.raises(NotFound):
        stores.content.get_live(b)


def test_seeded_tombstone_is_hidden(stores) -> None:
    a = stores.content.create_item(_item("A"))
    b = stores.content.create_item(_item("B", deleted_at="2024-05-01T12:00:00+00:00"))

    assert [i.id for i in stores.content.list_live()] == [a]
    with pytest.raises(NotFound):
        stores.content.get_live(b)


def test_get_unknown_id(stores) -> None:
    with pytest.raises(NotFound):
        stores.content.get_live(424242)


def test_round_trip_fields(stores) -> None:
    item_id = stores.content.create_item(_item("A"))
    item = stores.content.get_live(item_id)
    assert item.pictures == ["a.jpg", "b.jpg"]
    assert item.created_at
    assert item.updated_at is None
    assert item.is_live


def test_tombstone_is_one_way(stores) -> None:
    item_id = stores.content.create_item(_item())
    assert stores.content.tombstone_item(item_id) is True
    with stores.content.engine.connect() as conn:
        first = conn.execute(text("SELECT deleted_at FROM items WHERE id = :id"), {"id": item_id}).scalar()

    assert stores.content.tombstone_item(item_id) is False
    with stores.content.engine.connect() as conn:
        second = conn.execute(text("SELECT deleted_at FROM items WHERE id = :id"), {"id": item_id}).scalar()
    assert first is not None
    assert first == second


def test_tombstone_missing_item(stores) -> None:
    assert stores.content.tombstone_item(999) is False


def test_malformed_row_is_internal_error(stores) -> None:
    with stores.content.engine.connect() as conn:
        conn.execute(
            text(
                "INSERT INTO items (pictures, title_canonical, title_localized, description_canonical,"
                " description_localized, created_at) VALUES ('[]', 't', 't', 'd', 'd', '2024-01-01')"
            )
        )
        conn.commit()
    with pytest.raises(InternalError):
        stores.content.list_live()


def test_reserved_tables_exist(stores) -> None:
    tables = set(inspect(stores.content.engine).get_table_names())
    assert {"items", "external_items", "users", "audit_records", "sessions"} <= tables


@pytest.mark.parametrize(
    "overrides",
    [
        {"pictures": []},
        {"pictures": ["ok.jpg", "  "]},
        {"title_canonical": ""},
        {"title_localized": "   "},
        {"description_canonical": ""},
        {"description_localized": ""},
    ],
)
def test_item_requires_fields(overrides) -> None:
    with pytest.raises(ValueError):
        _item(**overrides)


def test_item_with_deleted_at_is_not_live() -> None:
    assert not _item(deleted_at="2024-01-01T00:00:00+00:00").is_live
