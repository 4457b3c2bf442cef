"""Administrative collection mutations.

Every successful write advances updated_at and then invalidates the
resolver cache, so the next read (and every active subscriber) sees the
change without waiting for the ttl.

Write failures propagate as BackendUnavailable or CollectionNotFound:
unlike the read path, an admin must know the edit did not land.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from src.songbook.access.enums import AccessLevel
from src.songbook.errors import CollectionNotFound
from src.songbook.fallback import default_collections
from src.songbook.logging_utils import sanitize_for_log
from src.songbook.models.collection import Collection
from src.songbook.models.stats import CollectionStats
from src.songbook.resolver import CollectionResolver
from src.songbook.store.base import CollectionStore

logger = logging.getLogger(__name__)

# Fields an admin may change through update_collection
EDITABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "access_level",
        "category",
        "sort_order",
        "is_active",
        "tags",
        "featured_song",
    }
)


class CollectionAdminService:
    """Create, edit and delete collections, keeping the cache consistent."""

    def __init__(
        self,
        store: CollectionStore,
        resolver: CollectionResolver,
        clock: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._resolver = resolver
        self._clock = clock or (lambda: datetime.now(UTC))

    def _next_timestamp(self, previous: datetime | None = None) -> datetime:
        """Current time, nudged forward so updated_at strictly increases."""
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    async def _commit(self, collection: Collection, action: str) -> Collection:
        await self._store.save_collection(collection)
        logger.info(
            "Collection updated by admin",
            extra={
                "action": action,
                "collection_id": sanitize_for_log(collection.id),
                "access_level": collection.access_level.value,
                "song_count": collection.song_count,
            },
        )
        return collection

    async def create_collection(
        self, collection: Collection, created_by: str = "admin"
    ) -> Collection:
        """Store a new collection.

        Raises:
            ValueError: If a collection with the same id exists
        """
        try:
            await self._store.fetch_collection(collection.id)
        except CollectionNotFound:
            pass
        else:
            raise ValueError(f"Collection already exists: {collection.id}")

        now = self._next_timestamp()
        created = collection.model_copy(
            update={
                "song_count": len(collection.songs),
                "created_at": now,
                "updated_at": now,
                "created_by": collection.created_by or created_by,
            }
        )
        await self._commit(created, "create")
        await self._resolver.invalidate_and_refresh()
        return created

    async def _apply_update(
        self,
        collection_id: str,
        changes: Callable[[Collection], dict[str, Any]],
        action: str,
    ) -> Collection:
        current = await self._store.fetch_collection(collection_id)
        data = current.model_dump()
        data.update(changes(current))
        data["song_count"] = len(data["songs"])
        data["updated_at"] = self._next_timestamp(current.updated_at)
        return await self._commit(Collection.model_validate(data), action)

    async def update_collection(self, collection_id: str, **changes: Any) -> Collection:
        """Change editable fields of a collection.

        Raises:
            ValueError: On unknown fields or invalid values
            CollectionNotFound: If the id is unknown
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        updated = await self._apply_update(collection_id, lambda _: changes, "update")
        await self._resolver.invalidate_and_refresh()
        return updated

    async def deactivate_collection(self, collection_id: str) -> Collection:
        """Soft delete: hide the collection from every signature."""
        updated = await self._apply_update(
            collection_id, lambda _: {"is_active": False}, "deactivate"
        )
        await self._resolver.invalidate_and_refresh()
        return updated

    async def delete_collection(self, collection_id: str) -> None:
        await self._store.delete_collection(collection_id)
        logger.info(
            "Collection deleted by admin",
            extra={"collection_id": sanitize_for_log(collection_id)},
        )
        await self._resolver.invalidate_and_refresh()

    async def add_song(self, collection_id: str, song_number: str) -> Collection:
        """Add a song to a collection. Adding a member again is a no-op write."""
        updated = await self._apply_update(
            collection_id, lambda c: {"songs": c.songs | {song_number}}, "add_song"
        )
        await self._resolver.invalidate_and_refresh()
        return updated

    async def remove_song(self, collection_id: str, song_number: str) -> Collection:
        updated = await self._apply_update(
            collection_id, lambda c: {"songs": c.songs - {song_number}}, "remove_song"
        )
        await self._resolver.invalidate_and_refresh()
        return updated

    async def bulk_update_access(
        self, collection_ids: Iterable[str], access_level: AccessLevel
    ) -> list[Collection]:
        """Set one access level on many collections, invalidating once.

        Stops at the first failing id; earlier writes stay applied and
        the cache is still invalidated.
        """
        updated: list[Collection] = []
        try:
            for collection_id in collection_ids:
                updated.append(
                    await self._apply_update(
                        collection_id,
                        lambda _: {"access_level": access_level},
                        "bulk_access",
                    )
                )
        finally:
            if updated:
                await self._resolver.invalidate_and_refresh()
        return updated

    async def seed_default_collections(self) -> list[Collection]:
        """Create whichever default collections are missing."""
        existing = {c.id for c in await self._store.fetch_all_collections()}
        now = self._next_timestamp()
        created = []
        for collection in default_collections(now):
            if collection.id in existing:
                continue
            created.append(await self._commit(collection, "seed"))

        if created:
            await self._resolver.invalidate_and_refresh()
        return created

    async def get_stats(self) -> CollectionStats:
        """Dashboard counts over every stored collection, inactive included."""
        return CollectionStats.from_collections(await self._store.fetch_all_collections())
