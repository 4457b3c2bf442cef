"""In-memory collection store.

Used for local development, offline demos and tests. Setting
``available = False`` makes every call fail with BackendUnavailable,
the same way an unreachable Realtime Database does.
"""

import asyncio
import logging
from collections.abc import Iterable

from src.songbook.errors import BackendUnavailable, CollectionNotFound
from src.songbook.logging_utils import sanitize_for_log
from src.songbook.models.collection import Collection, song_number_sort_key
from src.songbook.models.song import SongRef
from src.songbook.store.base import CollectionStore

logger = logging.getLogger(__name__)


class InMemoryCollectionStore(CollectionStore):
    """Dictionary-backed store with an availability switch."""

    def __init__(
        self,
        collections: Iterable[Collection] = (),
        songs: dict[str, list[SongRef]] | None = None,
    ):
        """Initialize store.

        Args:
            collections: Initial collection records
            songs: Optional full song records per collection id; collections
                   without an entry expose their membership as bare SongRefs
        """
        self._collections: dict[str, Collection] = {c.id: c for c in collections}
        self._songs: dict[str, list[SongRef]] = dict(songs or {})
        self.available = True
        self.fetch_count = 0

    @property
    def source_name(self) -> str:
        return "memory"

    def _check_available(self, operation: str) -> None:
        if not self.available:
            raise BackendUnavailable(operation, "store marked unavailable")

    async def fetch_all_collections(self) -> list[Collection]:
        # Yield like a real network call would
        await asyncio.sleep(0)
        self._check_available("fetch_all_collections")
        self.fetch_count += 1
        return list(self._collections.values())

    async def fetch_collection(self, collection_id: str) -> Collection:
        await asyncio.sleep(0)
        self._check_available("fetch_collection")
        collection = self._collections.get(collection_id)
        if collection is None:
            raise CollectionNotFound(collection_id)
        return collection

    async def fetch_songs_for_collection(self, collection_id: str) -> list[SongRef]:
        await asyncio.sleep(0)
        self._check_available("fetch_songs_for_collection")
        collection = self._collections.get(collection_id)
        if collection is None:
            raise CollectionNotFound(collection_id)

        if collection_id in self._songs:
            songs = list(self._songs[collection_id])
        else:
            songs = [
                SongRef(number=n, collection_id=collection_id)
                for n in collection.songs
            ]
        songs.sort(key=lambda s: song_number_sort_key(s.number))
        return songs

    async def save_collection(self, collection: Collection) -> None:
        await asyncio.sleep(0)
        self._check_available("save_collection")
        self._collections[collection.id] = collection
        logger.debug(
            "Saved collection in memory",
            extra={"collection_id": sanitize_for_log(collection.id)},
        )

    async def delete_collection(self, collection_id: str) -> None:
        await asyncio.sleep(0)
        self._check_available("delete_collection")
        if collection_id not in self._collections:
            raise CollectionNotFound(collection_id)
        del self._collections[collection_id]
        self._songs.pop(collection_id, None)

    def get(self, collection_id: str) -> Collection | None:
        """Synchronous lookup, for seeding and assertions."""
        return self._collections.get(collection_id)
