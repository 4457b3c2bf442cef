"""Collection data models."""

from src.songbook.models.collection import Collection, song_number_sort_key
from src.songbook.models.results import (
    AccessResult,
    CollectionSongsResult,
    ResolvedCollections,
    VisibleCollection,
)
from src.songbook.models.song import FavoriteRef, SongRef
from src.songbook.models.stats import CollectionStats

__all__ = [
    "AccessResult",
    "Collection",
    "CollectionSongsResult",
    "CollectionStats",
    "FavoriteRef",
    "ResolvedCollections",
    "SongRef",
    "VisibleCollection",
    "song_number_sort_key",
]
