"""Song and favorite references."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SongRef(BaseModel):
    """A song as listed inside a collection."""

    model_config = ConfigDict(frozen=True)

    number: str = Field(..., min_length=1)
    collection_id: str
    title: str | None = None

    @classmethod
    def from_firebase_item(
        cls, key: str, item: dict[str, Any], collection_id: str
    ) -> SongRef:
        """Create SongRef from a song record under song_collection/{id}/songs."""
        number = item.get("song_number") or key
        return cls(
            number=str(number),
            collection_id=collection_id,
            title=item.get("song_title"),
        )


class FavoriteRef(BaseModel):
    """A user's favorite song, optionally pinned to a collection."""

    model_config = ConfigDict(frozen=True)

    song_number: str = Field(..., min_length=1)
    collection_id: str | None = None
