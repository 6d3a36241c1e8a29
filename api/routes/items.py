"""
api/routes/items.py -- Read-only content item endpoints.

Routes:
  GET /items            -- every live item, JSON array
  GET /items/{item_id}  -- one live item; 404 if missing or tombstoned

No authentication: content is public. There are no mutation routes; items are
created and tombstoned by the operator CLI (main.py).

Errors are not handled here. ContentStore raises NotFound / InternalError and
the exception handlers in api/main.py map them to 404 / 500.
"""

from fastapi import APIRouter, Request

from api.models import ItemResponse
from content.store import ContentStore
from core.errors import NotFound

router = APIRouter()


@router.get("/items", response_model=list[ItemResponse])
def list_items(request: Request) -> list[ItemResponse]:
    """Return all live items in insertion order."""
    store: ContentStore = request.app.state.content_store
    return [ItemResponse.from_item(item) for item in store.list_live()]


@router.get("/items/{item_id}", response_model=ItemResponse)
def get_item(request: Request, item_id: str) -> ItemResponse:
    """Return a single live item.

    item_id is taken as a string so a malformed id gets the same 404 as an
    unknown or tombstoned one instead of a validation error.
    """
    # Canonical form only: ASCII digits, no leading zero, fits a 64-bit integer column.
    canonical = item_id.isascii() and item_id.isdigit() and len(item_id) <= 18
    if not canonical or (item_id.startswith("0") and item_id != "0"):
        raise NotFound(f"item {item_id[:50]!r}")
    store: ContentStore = request.app.state.content_store
    return ItemResponse.from_item(store.get_live(int(item_id)))
