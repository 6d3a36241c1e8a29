"""
content/models.py -- Domain dataclasses for site content.

All persistence and visibility rules (tombstone filtering) live in
content/store.py. The only logic here is required-field validation in the
constructors.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ContentItem:
    """A piece of site content with canonical and localized text.

    pictures is an ordered, non-empty list of picture references (URLs or
    storage keys). The *_canonical fields hold the reference-language text,
    the *_localized fields the translation.

    deleted_at is None while the item is live. Once set, the item is a
    tombstone: it stays in storage but is invisible to every read path.

    id is None before the record is written to the database.
    """

    pictures: list[str]
    title_canonical: str
    title_localized: str
    description_canonical: str
    description_localized: str
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.pictures or not all(isinstance(p, str) and p.strip() for p in self.pictures):
            raise ValueError("pictures must be a non-empty list of references")
        for name in ("title_canonical", "title_localized", "description_canonical", "description_localized"):
            if not (getattr(self, name) or "").strip():
                raise ValueError(f"{name} is required")

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None

