"""
API response models for the content site's JSON endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in content/models.py, which own
the internal domain representation. Route handlers map between the two.

Separation of concerns: content/ models = domain truth; api/ models = API contract.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from content.models import ContentItem

# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class ItemResponse(BaseModel):
    """One live content item.

    deleted_at is not part of the contract: only live items are ever
    serialized, so it would always be null.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    pictures: list[str]
    title_canonical: str
    title_localized: str
    description_canonical: str
    description_localized: str
    created_at: str
    updated_at: Optional[str] = None

    @classmethod
    def from_item(cls, item: ContentItem) -> "ItemResponse":
        """Build an ItemResponse from a ContentItem dataclass."""
        return cls(
            id=item.id,
            pictures=list(item.pictures),
            title_canonical=item.title_canonical,
            title_localized=item.title_localized,
            description_canonical=item.description_canonical,
            description_localized=item.description_localized,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
