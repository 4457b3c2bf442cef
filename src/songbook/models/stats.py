"""Aggregate statistics over a set of collections."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from src.songbook.access.enums import AccessLevel, CollectionCategory
from src.songbook.models.collection import Collection


@dataclass(frozen=True)
class CollectionStats:
    """Counts shown on the admin collection dashboard."""

    total_collections: int = 0
    active_collections: int = 0
    public_collections: int = 0
    total_songs: int = 0
    access_level_counts: dict[AccessLevel, int] = field(default_factory=dict)
    category_counts: dict[CollectionCategory, int] = field(default_factory=dict)

    @classmethod
    def from_collections(cls, collections: Iterable[Collection]) -> CollectionStats:
        access_level_counts: dict[AccessLevel, int] = {}
        category_counts: dict[CollectionCategory, int] = {}
        total = 0
        active = 0
        public = 0
        total_songs = 0

        for collection in collections:
            total += 1
            access_level_counts[collection.access_level] = (
                access_level_counts.get(collection.access_level, 0) + 1
            )
            category_counts[collection.category] = (
                category_counts.get(collection.category, 0) + 1
            )
            if collection.is_active:
                active += 1
            if collection.is_public:
                public += 1
            total_songs += len(collection.songs)

        return cls(
            total_collections=total,
            active_collections=active,
            public_collections=public,
            total_songs=total_songs,
            access_level_counts=access_level_counts,
            category_counts=category_counts,
        )
