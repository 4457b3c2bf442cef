"""Error types for the collection access layer."""

from src.songbook.errors.collection_errors import (
    BackendUnavailable,
    CollectionError,
    CollectionNotFound,
    DataIntegrityWarning,
)

__all__ = [
    "BackendUnavailable",
    "CollectionError",
    "CollectionNotFound",
    "DataIntegrityWarning",
]
