"""Base class for collection backends."""

from abc import ABC, abstractmethod

from src.songbook.errors import CollectionNotFound
from src.songbook.models.collection import Collection
from src.songbook.models.song import SongRef


class CollectionStore(ABC):
    """Authoritative source of collection records.

    A thin accessor: no caching and no retries (the resolver owns both).
    Every transport failure surfaces as BackendUnavailable.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return the backend name for logs and cache status."""
        pass

    @abstractmethod
    async def fetch_all_collections(self) -> list[Collection]:
        """Fetch every collection record, inactive ones included.

        Returns:
            Parsed collections in backend order

        Raises:
            BackendUnavailable: On network, timeout, auth or payload errors
        """
        pass

    async def fetch_collection(self, collection_id: str) -> Collection:
        """Fetch one collection record.

        The default scans fetch_all_collections(); backends with keyed
        reads override it.

        Raises:
            CollectionNotFound: If the collection id is unknown
            BackendUnavailable: On transport failure
        """
        for collection in await self.fetch_all_collections():
            if collection.id == collection_id:
                return collection
        raise CollectionNotFound(collection_id)

    @abstractmethod
    async def fetch_songs_for_collection(self, collection_id: str) -> list[SongRef]:
        """Fetch the songs of one collection, sorted by song number.

        Raises:
            CollectionNotFound: If the collection id is unknown
            BackendUnavailable: On transport failure
        """
        pass

    @abstractmethod
    async def save_collection(self, collection: Collection) -> None:
        """Create or overwrite a collection record.

        Raises:
            BackendUnavailable: On transport failure
        """
        pass

    @abstractmethod
    async def delete_collection(self, collection_id: str) -> None:
        """Remove a collection record.

        Raises:
            CollectionNotFound: If the collection id is unknown
            BackendUnavailable: On transport failure
        """
        pass

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
        return None
