"""Firebase Realtime Database store (REST API).

Data layout:
    song_collections/{id}            collection metadata + songs map
    song_collection/{id}/songs/{n}   song records (song_number, song_title)

For On-Call Engineers:
    Every failure here becomes BackendUnavailable and the resolver serves
    cached or fallback data. If users report an "offline" badge while
    online:
    1. Check FIREBASE_DATABASE_URL points at the right instance
    2. Check FIREBASE_AUTH_TOKEN has not expired (401/403 in logs)
    3. Check COLLECTION_FETCH_TIMEOUT_SECONDS (default 8s)
"""

import logging
import os
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from src.songbook.errors import BackendUnavailable, CollectionNotFound
from src.songbook.integrity import reconcile_song_count
from src.songbook.logging_utils import get_safe_error_info, sanitize_for_log
from src.songbook.models.collection import Collection
from src.songbook.models.song import SongRef
from src.songbook.store.base import CollectionStore
from src.songbook.store.parsing import parse_collections, parse_songs

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 8.0


@dataclass
class FirebaseConfig:
    """Realtime Database configuration from environment."""

    database_url: str
    auth_token: str | None = None
    collections_path: str = "song_collections"
    songs_path: str = "song_collection"
    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "FirebaseConfig":
        """Create config from environment variables."""
        return cls(
            database_url=os.environ.get("FIREBASE_DATABASE_URL", ""),
            auth_token=os.environ.get("FIREBASE_AUTH_TOKEN") or None,
            collections_path=os.environ.get(
                "FIREBASE_COLLECTIONS_PATH", "song_collections"
            ),
            songs_path=os.environ.get("FIREBASE_SONGS_PATH", "song_collection"),
            timeout_seconds=float(
                os.environ.get(
                    "COLLECTION_FETCH_TIMEOUT_SECONDS",
                    str(DEFAULT_FETCH_TIMEOUT_SECONDS),
                )
            ),
        )


class FirebaseCollectionStore(CollectionStore):
    """Collection store backed by the Realtime Database REST API."""

    def __init__(self, config: FirebaseConfig, client: httpx.AsyncClient | None = None):
        """Initialize store.

        Args:
            config: Database location, credentials and timeout
            client: Optional preconfigured client (tests inject a mock transport)
        """
        self._config = config
        self._client = client

    @property
    def source_name(self) -> str:
        return "firebase"

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.database_url.rstrip("/"),
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self._config.timeout_seconds),
            )
        return self._client

    def _path(self, base: str, *keys: str) -> str:
        """Build a REST path; keys are escaped, the configured base is not."""
        escaped = "".join("/" + quote(k, safe="") for k in keys)
        return "/" + base.strip("/") + escaped + ".json"

    def _params(self, **extra: str) -> dict[str, str]:
        params = dict(extra)
        if self._config.auth_token:
            params["auth"] = self._config.auth_token
        return params

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json_body: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Send one request and decode the JSON body.

        Raises:
            BackendUnavailable: On any transport, status or decode failure
        """
        try:
            response = await self.client.request(
                method, path, json=json_body, params=params or self._params()
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "Realtime Database request timed out",
                extra={"operation": operation, **get_safe_error_info(e)},
            )
            raise BackendUnavailable(operation, "timeout") from e
        except httpx.HTTPError as e:
            logger.warning(
                "Realtime Database request failed",
                extra={"operation": operation, **get_safe_error_info(e)},
            )
            raise BackendUnavailable(operation, "transport error") from e

        if response.status_code in (401, 403):
            raise BackendUnavailable(operation, "permission denied")

        if not response.is_success:
            logger.warning(
                "Realtime Database returned error status",
                extra={
                    "operation": operation,
                    "status_code": response.status_code,
                    "body": sanitize_for_log(response.text),
                },
            )
            raise BackendUnavailable(operation, f"status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise BackendUnavailable(operation, "invalid JSON") from e

    async def fetch_all_collections(self) -> list[Collection]:
        payload = await self._request(
            "GET", self._path(self._config.collections_path), "fetch_all_collections"
        )
        collections = parse_collections(payload)
        logger.info(
            "Fetched collections from Realtime Database",
            extra={"collection_count": len(collections)},
        )
        return collections

    async def _fetch_collection_record(
        self, collection_id: str, operation: str
    ) -> dict[str, Any]:
        record = await self._request(
            "GET", self._path(self._config.collections_path, collection_id), operation
        )
        if record is None:
            raise CollectionNotFound(collection_id)
        if not isinstance(record, dict):
            raise BackendUnavailable(operation, "collection record is not a map")
        return record

    async def fetch_collection(self, collection_id: str) -> Collection:
        operation = "fetch_collection"
        record = await self._fetch_collection_record(collection_id, operation)
        try:
            collection = Collection.from_firebase_item(collection_id, record)
        except ValidationError as e:
            raise BackendUnavailable(operation, "malformed collection record") from e
        return reconcile_song_count(collection)

    async def fetch_songs_for_collection(self, collection_id: str) -> list[SongRef]:
        operation = "fetch_songs_for_collection"
        record = await self._fetch_collection_record(collection_id, operation)

        payload = await self._request(
            "GET",
            self._path(self._config.songs_path, collection_id, "songs"),
            operation,
        )
        if payload is None:
            # No song records yet: fall back to the membership map
            payload = record.get("songs")

        songs = parse_songs(payload, collection_id)
        logger.debug(
            "Fetched collection songs",
            extra={
                "collection_id": sanitize_for_log(collection_id),
                "song_count": len(songs),
            },
        )
        return songs

    async def save_collection(self, collection: Collection) -> None:
        await self._request(
            "PUT",
            self._path(self._config.collections_path, collection.id),
            "save_collection",
            json_body=collection.to_firebase_item(),
        )
        logger.info(
            "Saved collection",
            extra={"collection_id": sanitize_for_log(collection.id)},
        )

    async def delete_collection(self, collection_id: str) -> None:
        operation = "delete_collection"
        exists = await self._request(
            "GET",
            self._path(self._config.collections_path, collection_id),
            operation,
            params=self._params(shallow="true"),
        )
        if exists is None:
            raise CollectionNotFound(collection_id)

        await self._request(
            "DELETE",
            self._path(self._config.collections_path, collection_id),
            operation,
        )
        logger.info(
            "Deleted collection",
            extra={"collection_id": sanitize_for_log(collection_id)},
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
