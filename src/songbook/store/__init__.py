"""Collection backends."""

from src.songbook.store.base import CollectionStore
from src.songbook.store.firebase import FirebaseCollectionStore, FirebaseConfig
from src.songbook.store.memory import InMemoryCollectionStore
from src.songbook.store.parsing import parse_collections, parse_songs

__all__ = [
    "CollectionStore",
    "FirebaseCollectionStore",
    "FirebaseConfig",
    "InMemoryCollectionStore",
    "parse_collections",
    "parse_songs",
]
