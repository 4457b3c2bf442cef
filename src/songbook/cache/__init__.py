"""Collection cache."""

from src.songbook.cache.collection_cache import (
    CacheEntry,
    CacheStats,
    CollectionCache,
    CollectionSnapshot,
    signature_of,
)

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CollectionCache",
    "CollectionSnapshot",
    "signature_of",
]
