"""Parsing layer between backend payloads and typed models.

Realtime Database responses are loosely typed JSON. Nothing untyped goes
past this module: a payload of the wrong overall shape is a backend
failure, a single bad record is skipped with a warning.
"""

import logging
from typing import Any

from pydantic import ValidationError

from src.songbook.errors import BackendUnavailable
from src.songbook.integrity import reconcile_song_count
from src.songbook.logging_utils import sanitize_for_log
from src.songbook.models.collection import Collection, song_number_sort_key
from src.songbook.models.song import SongRef

logger = logging.getLogger(__name__)


def _iter_records(payload: Any, operation: str) -> list[tuple[str, Any]]:
    """Normalise a map-or-array payload into (key, record) pairs."""
    if payload is None:
        return []
    if isinstance(payload, dict):
        return [(str(k), v) for k, v in payload.items()]
    if isinstance(payload, list):
        # Dense integer keys come back as an array with null holes
        return [(str(i), v) for i, v in enumerate(payload) if v is not None]
    raise BackendUnavailable(
        operation, f"unexpected payload type {type(payload).__name__}"
    )


def parse_collections(payload: Any) -> list[Collection]:
    """Parse the collections node into Collection models.

    Args:
        payload: Decoded JSON of the collections path

    Returns:
        Parsed collections with song counts reconciled

    Raises:
        BackendUnavailable: If the payload is not a map, array or null
    """
    collections: list[Collection] = []
    skipped = 0

    for key, record in _iter_records(payload, "fetch_all_collections"):
        if not isinstance(record, dict):
            skipped += 1
            logger.warning(
                "Skipping malformed collection record",
                extra={
                    "collection_id": sanitize_for_log(key),
                    "record_type": type(record).__name__,
                },
            )
            continue
        try:
            collection = Collection.from_firebase_item(key, record)
        except ValidationError as e:
            skipped += 1
            logger.warning(
                "Skipping invalid collection record",
                extra={
                    "collection_id": sanitize_for_log(key),
                    "error_count": e.error_count(),
                },
            )
            continue
        collections.append(reconcile_song_count(collection))

    if skipped:
        logger.info(
            "Parsed collections with skipped records",
            extra={"parsed": len(collections), "skipped": skipped},
        )
    return collections


def parse_songs(payload: Any, collection_id: str) -> list[SongRef]:
    """Parse a collection's song records, sorted by song number.

    Records may be full song objects or bare membership flags (true).
    """
    songs: list[SongRef] = []
    for key, record in _iter_records(payload, "fetch_songs_for_collection"):
        if record is False:
            continue
        if record is True:
            songs.append(SongRef(number=key, collection_id=collection_id))
            continue
        if not isinstance(record, dict):
            logger.warning(
                "Skipping malformed song record",
                extra={
                    "collection_id": sanitize_for_log(collection_id),
                    "song_key": sanitize_for_log(key),
                },
            )
            continue
        try:
            songs.append(SongRef.from_firebase_item(key, record, collection_id))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid song record",
                extra={
                    "collection_id": sanitize_for_log(collection_id),
                    "song_key": sanitize_for_log(key),
                    "error_count": e.error_count(),
                },
            )

    songs.sort(key=lambda s: song_number_sort_key(s.number))
    return songs
