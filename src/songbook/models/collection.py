"""Song collection model with Realtime Database item mapping."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.songbook.access.enums import (
    AccessLevel,
    CollectionCategory,
    parse_access_level,
    parse_category,
)
from src.songbook.logging_utils import sanitize_for_log

logger = logging.getLogger(__name__)

# Timestamp used when a stored record carries none
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def song_number_sort_key(number: str) -> tuple[int, int | str]:
    """Sort numeric song numbers numerically, then the rest lexically."""
    stripped = number.strip()
    if stripped.isdigit():
        return (0, int(stripped))
    return (1, stripped)


def _parse_timestamp(value: Any) -> datetime:
    """Parse ISO-8601 strings or epoch milliseconds (server timestamps)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        return EPOCH
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return EPOCH
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return EPOCH


def _parse_membership(value: Any) -> frozenset[str]:
    """Parse the songs map ({number: true}).

    The Realtime Database returns maps with dense integer keys as arrays,
    so [null, true, true] and [null, 1, 1] both mean songs "1" and "2".
    An array holding anything other than null, booleans, 0 or 1 is read
    as a plain list of song numbers.
    """
    if isinstance(value, dict):
        return frozenset(str(k) for k, v in value.items() if v)
    if isinstance(value, list):
        if all(v is None or (isinstance(v, int) and v in (0, 1)) for v in value):
            return frozenset(str(i) for i, v in enumerate(value) if v)
        return frozenset(str(v) for v in value if v is not None)
    return frozenset()


def _parse_song_count(value: Any) -> int | None:
    """Parse songCount; None when absent or not a non-negative whole number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class Collection(BaseModel):
    """A named, access-gated grouping of songs.

    Frozen: a cached collection is never mutated in place. Admin edits
    build a new instance with model_copy(update=...).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""
    access_level: AccessLevel = AccessLevel.PUBLIC
    category: CollectionCategory = CollectionCategory.CUSTOM
    songs: frozenset[str] = frozenset()
    song_count: int = Field(0, ge=0)
    is_active: bool = True  # For soft delete
    sort_order: int = 0

    # Metadata
    created_at: datetime = EPOCH
    updated_at: datetime = EPOCH
    created_by: str = ""
    tags: tuple[str, ...] = ()
    featured_song: str | None = None

    @property
    def is_public(self) -> bool:
        return self.access_level is AccessLevel.PUBLIC

    @property
    def song_numbers(self) -> list[str]:
        """Member song numbers in display order."""
        return sorted(self.songs, key=song_number_sort_key)

    @property
    def sort_key(self) -> tuple[int, str]:
        """Display ordering: sort_order, then id."""
        return (self.sort_order, self.id)

    def contains_song(self, song_number: str) -> bool:
        return song_number in self.songs

    def to_firebase_item(self) -> dict[str, Any]:
        """Convert to Realtime Database item format."""
        item: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "accessLevel": self.access_level.value,
            "category": self.category.value,
            "songs": {number: True for number in self.song_numbers},
            "songCount": self.song_count,
            "isActive": self.is_active,
            "sortOrder": self.sort_order,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "createdBy": self.created_by,
            "tags": list(self.tags),
        }
        if self.featured_song:
            item["featuredSong"] = self.featured_song
        return item

    @classmethod
    def from_firebase_item(cls, key: str, item: dict[str, Any]) -> Collection:
        """Create Collection from a Realtime Database item.

        The map key is authoritative for the id; an "id" field inside the
        item is only used when the key is empty.

        Raises:
            pydantic.ValidationError: If the record cannot form a Collection
        """
        sort_order = item.get("sortOrder")
        is_active = item.get("isActive")
        songs = _parse_membership(item.get("songs"))

        raw_count = item.get("songCount")
        song_count = _parse_song_count(raw_count)
        if song_count is None:
            if raw_count is not None:
                logger.warning(
                    "Invalid songCount in collection record",
                    extra={
                        "collection_id": sanitize_for_log(key),
                        "song_count": sanitize_for_log(raw_count),
                    },
                )
            # Membership is ground truth
            song_count = len(songs)

        return cls(
            id=str(key or item.get("id") or ""),
            name=str(item.get("name") or ""),
            description=str(item.get("description") or ""),
            access_level=parse_access_level(item.get("accessLevel")),
            category=parse_category(item.get("category")),
            songs=songs,
            song_count=song_count,
            is_active=True if is_active is None else is_active,
            sort_order=sort_order if sort_order is not None else 0,
            created_at=_parse_timestamp(item.get("createdAt")),
            updated_at=_parse_timestamp(item.get("updatedAt")),
            created_by=str(item.get("createdBy") or ""),
            tags=tuple(str(t) for t in item.get("tags") or ()),
            featured_song=item.get("featuredSong"),
        )
