"""Data-integrity checks for collection records.

Issues found here are logged as DataIntegrityWarning and processing
continues. The membership set is ground truth for song counts.
"""

import logging
from collections.abc import Iterable, Mapping

from src.songbook.errors import DataIntegrityWarning
from src.songbook.logging_utils import sanitize_for_log
from src.songbook.models.collection import Collection
from src.songbook.models.song import FavoriteRef

logger = logging.getLogger(__name__)


def report_integrity_issue(warning: DataIntegrityWarning) -> None:
    """Log a data-integrity issue without interrupting the caller."""
    logger.warning(
        "Collection data integrity issue",
        extra={
            "warning_type": type(warning).__name__,
            "collection_id": sanitize_for_log(warning.collection_id),
            "issue": warning.issue,
            "detail": sanitize_for_log(warning.detail) if warning.detail else None,
        },
    )


def reconcile_song_count(collection: Collection) -> Collection:
    """Make song_count agree with the membership set.

    Returns the collection unchanged when consistent, otherwise a copy
    whose song_count is len(songs), after logging the mismatch.
    """
    actual = len(collection.songs)
    if collection.song_count == actual:
        return collection

    report_integrity_issue(
        DataIntegrityWarning(
            collection.id,
            "song_count_mismatch",
            f"songCount={collection.song_count} membership={actual}",
        )
    )
    return collection.model_copy(update={"song_count": actual})


def check_favorites(
    favorites: Iterable[FavoriteRef],
    collections_by_id: Mapping[str, Collection],
) -> list[DataIntegrityWarning]:
    """Find favorites that point at inactive collections.

    Args:
        favorites: The user's favorites
        collections_by_id: Latest known collections, inactive ones included

    Returns:
        One warning per offending favorite (already logged)
    """
    warnings: list[DataIntegrityWarning] = []
    for favorite in favorites:
        if favorite.collection_id is None:
            continue
        collection = collections_by_id.get(favorite.collection_id)
        if collection is not None and not collection.is_active:
            warning = DataIntegrityWarning(
                collection.id,
                "favorite_references_inactive_collection",
                f"song={favorite.song_number}",
            )
            report_integrity_issue(warning)
            warnings.append(warning)
    return warnings
