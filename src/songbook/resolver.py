"""Collection resolver: which collections a caller may see.

Data flow for get_accessible_collections(caps):

    signature_of(caps) -> cache hit? -> return copy
                       -> fresh raw snapshot? -> filter, cache, publish
                       -> fetch (retried, shielded) -> filter, cache, publish
                       -> BackendUnavailable -> stale entry, stale snapshot
                          or static fallback, flagged degraded

Only CollectionNotFound crosses this boundary as an exception. Backend
outages become degraded-but-successful results.

For On-Call Engineers:
    - "Serving degraded collection list" warnings mean the backend is
      unreachable and users see an offline badge. Check the store logs
      for the underlying reason (timeout, permission denied, status N).
    - Fetches run as detached tasks: a caller that goes away does not
      cancel the fetch, it still fills the cache.
    - get_cache_status() shows per-signature freshness for debug screens.
"""

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from typing import Any, TypeVar

from src.songbook.access.capabilities import UserCapabilities
from src.songbook.access.enums import AccessDecision, AccessLevel
from src.songbook.access.policy import can_access, upgrade_message
from src.songbook.cache.collection_cache import (
    CollectionCache,
    CollectionSnapshot,
    signature_of,
)
from src.songbook.config import ResolverSettings
from src.songbook.errors import BackendUnavailable, CollectionNotFound
from src.songbook.fallback import static_fallback_collections
from src.songbook.integrity import check_favorites
from src.songbook.logging_utils import get_safe_error_info, sanitize_for_log
from src.songbook.models.collection import Collection
from src.songbook.models.results import (
    AccessResult,
    CollectionSongsResult,
    ResolvedCollections,
    ResultSource,
    VisibleCollection,
)
from src.songbook.models.song import FavoriteRef, SongRef
from src.songbook.notifier import ChangeNotifier, Subscription
from src.songbook.retry import backend_retrying
from src.songbook.store.base import CollectionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DENIAL_REASONS: dict[AccessDecision, str | None] = {
    AccessDecision.GRANTED: None,
    AccessDecision.PREVIEW_ONLY: "upgrade_required",
    AccessDecision.DENIED: "admin_only",
}


def filter_visible(
    collections: Iterable[Collection], signature: AccessLevel
) -> list[VisibleCollection]:
    """Apply the access policy to raw collections for one signature.

    Inactive collections are dropped for every signature. Denied ones
    are dropped, the rest are sorted by (sort_order, id).
    """
    caps = UserCapabilities.for_signature(signature)
    visible: list[VisibleCollection] = []
    for collection in sorted(collections, key=lambda c: c.sort_key):
        if not collection.is_active:
            continue
        decision = can_access(collection.access_level, caps)
        if not decision.is_visible:
            continue
        visible.append(VisibleCollection.build(collection, decision))
    return visible


class CollectionResolver:
    """Resolve visible collections per capability signature.

    Constructed explicitly by the composition root (see
    src.songbook.dependencies); tests build an isolated instance around a
    fake store.
    """

    def __init__(
        self,
        store: CollectionStore,
        cache: CollectionCache | None = None,
        notifier: ChangeNotifier | None = None,
        settings: ResolverSettings | None = None,
    ):
        """Initialize resolver.

        Args:
            store: Authoritative collection backend
            cache: Signature cache (default: new cache with settings ttl)
            notifier: Update channel (default: new notifier)
            settings: Retry, refresh-ahead and queue settings
        """
        self._settings = settings or ResolverSettings()
        self._store = store
        self._cache = cache or CollectionCache(self._settings.cache_ttl_seconds)
        self._notifier = notifier or ChangeNotifier(self._settings.subscriber_queue_size)
        self._tasks: set[asyncio.Task] = set()
        self._refreshing: set[AccessLevel] = set()
        # Bumped by invalidate_and_refresh; fetches started earlier do not write back
        self._generation = 0
        self._closed = False

    @property
    def cache(self) -> CollectionCache:
        return self._cache

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    @property
    def store(self) -> CollectionStore:
        return self._store

    # Read path

    async def get_accessible_collections(
        self, caps: UserCapabilities
    ) -> ResolvedCollections:
        """Return the collections visible to a caller.

        Never raises for backend problems: an outage yields a degraded
        result built from stale or static data.

        Args:
            caps: Capabilities of the caller

        Returns:
            ResolvedCollections (a copy; callers may mutate the list)
        """
        signature = signature_of(caps)

        entry = self._cache.get(signature)
        if entry is not None:
            self._maybe_refresh_ahead(signature, entry.age(self._cache.now()))
            return ResolvedCollections(
                signature=signature,
                collections=list(entry.collections),
                source="cache",
                fetched_at=entry.fetched_at,
            )

        snapshot = self._cache.get_snapshot()
        if snapshot is not None:
            self._apply_snapshot(snapshot, (signature,))
            return self._resolved(signature, snapshot, "cache")

        try:
            snapshot = await self._shielded(
                self._refresh((signature,)), f"collection-fetch-{signature.value}"
            )
        except BackendUnavailable as e:
            return self._degraded(signature, e)
        return self._resolved(signature, snapshot, "backend")

    async def get_access_for_collection(
        self,
        collection_id: str,
        caps: UserCapabilities,
        song_number: str | None = None,
    ) -> AccessResult:
        """Check access to one collection, optionally for one song (deep links).

        Uses the cached raw snapshot when fresh; otherwise performs a full
        fetch, which also fills the caller's cache entry.

        Args:
            collection_id: Requested collection
            caps: Capabilities of the caller
            song_number: Song the link points at, if any

        Returns:
            AccessResult; inactive collections are DENIED with reason "inactive"

        Raises:
            CollectionNotFound: If the id is absent from the latest data
        """
        snapshot, degraded = await self._snapshot_for_lookup(signature_of(caps))
        collection = snapshot.find(collection_id)

        if collection is None:
            if degraded:
                # Unknown to stale data only; the backend may still have it
                return AccessResult(
                    collection_id=collection_id,
                    decision=AccessDecision.DENIED,
                    reason="unavailable",
                    song_number=song_number,
                    degraded=True,
                )
            logger.info(
                "Collection not found",
                extra={"collection_id": sanitize_for_log(collection_id)},
            )
            raise CollectionNotFound(collection_id)

        if not collection.is_active:
            return AccessResult(
                collection_id=collection_id,
                decision=AccessDecision.DENIED,
                reason="inactive",
                song_number=song_number,
                degraded=degraded,
            )

        decision = can_access(collection.access_level, caps)
        song_in_collection = None
        if song_number is not None and decision is AccessDecision.GRANTED:
            song_in_collection = collection.contains_song(song_number)

        return AccessResult(
            collection_id=collection_id,
            decision=decision,
            collection=(
                VisibleCollection.build(collection, decision)
                if decision.is_visible
                else None
            ),
            reason=_DENIAL_REASONS[decision],
            upgrade_message=(
                upgrade_message(collection.access_level)
                if decision is not AccessDecision.GRANTED
                else ""
            ),
            song_number=song_number,
            song_in_collection=song_in_collection,
            degraded=degraded,
        )

    async def get_songs_for_collection(
        self, collection_id: str, caps: UserCapabilities
    ) -> CollectionSongsResult:
        """Return the songs of a collection when access is granted.

        Preview-only and denied callers get an empty song list. When the
        song fetch fails, the cached membership set is returned as
        number-only SongRefs, flagged degraded.

        Raises:
            CollectionNotFound: If the id is unknown
        """
        access = await self.get_access_for_collection(collection_id, caps)
        if access.decision is not AccessDecision.GRANTED or access.collection is None:
            return CollectionSongsResult(
                collection_id=collection_id,
                decision=access.decision,
                degraded=access.degraded,
            )

        try:
            songs = await self._with_retry(
                lambda: self._store.fetch_songs_for_collection(collection_id)
            )
        except BackendUnavailable as e:
            logger.warning(
                "Serving cached song membership",
                extra={
                    "collection_id": sanitize_for_log(collection_id),
                    **get_safe_error_info(e),
                },
            )
            membership = access.collection.collection.song_numbers
            return CollectionSongsResult(
                collection_id=collection_id,
                decision=access.decision,
                songs=[SongRef(number=n, collection_id=collection_id) for n in membership],
                degraded=True,
            )

        return CollectionSongsResult(
            collection_id=collection_id,
            decision=access.decision,
            songs=songs,
            degraded=access.degraded,
        )

    async def get_collections_containing_song(
        self, song_number: str, caps: UserCapabilities
    ) -> ResolvedCollections:
        """Granted collections whose membership includes a song."""
        resolved = await self.get_accessible_collections(caps)
        matching = [
            visible
            for visible in resolved.collections
            if visible.decision is AccessDecision.GRANTED
            and visible.collection.contains_song(song_number)
        ]
        return dataclasses.replace(resolved, collections=matching)

    async def resolve_favorites(
        self, favorites: Iterable[FavoriteRef], caps: UserCapabilities
    ) -> list[FavoriteRef]:
        """Keep the favorites the caller can still open.

        Favorites pinned to an inactive, hidden or locked collection are
        dropped; favorites without a collection are kept. Favorites that
        point at inactive collections are logged as integrity issues.
        """
        favorites = list(favorites)
        resolved = await self.get_accessible_collections(caps)

        snapshot = self._cache.get_snapshot(include_stale=True)
        if snapshot is not None:
            check_favorites(favorites, snapshot.by_id())

        granted = {
            visible.id
            for visible in resolved.collections
            if visible.decision is AccessDecision.GRANTED
        }
        return [
            favorite
            for favorite in favorites
            if favorite.collection_id is None or favorite.collection_id in granted
        ]

    # Invalidation and subscriptions

    async def invalidate_and_refresh(self, caps: UserCapabilities | None = None) -> None:
        """Drop all cached lists and re-resolve for subscribed signatures.

        Called after every administrative write. Backend failures during
        the refresh are logged and swallowed: the next read refetches.

        Args:
            caps: Also refresh this caller's signature
        """
        self._generation += 1
        self._cache.invalidate_all()
        # Republished below for signatures that refresh successfully
        self._notifier.forget()

        signatures = set(self._notifier.active_signatures())
        if caps is not None:
            signatures.add(signature_of(caps))
        if not signatures:
            return

        ordered = tuple(sig for sig in AccessLevel if sig in signatures)
        try:
            await self._shielded(self._refresh(ordered), "collection-invalidate-refresh")
        except BackendUnavailable as e:
            logger.warning(
                "Refresh after invalidation failed",
                extra={
                    "signatures": [sig.value for sig in ordered],
                    **get_safe_error_info(e),
                },
            )

    def subscribe(
        self,
        target: UserCapabilities | AccessLevel,
        subscriber_id: str | None = None,
    ) -> Subscription:
        """Follow updates for a caller's signature (or a signature directly)."""
        signature = target if isinstance(target, AccessLevel) else signature_of(target)
        return self._notifier.subscribe(signature, subscriber_id)

    def get_cache_status(self) -> dict[str, Any]:
        """Cache freshness, stats and subscriber counts for debug screens."""
        status = self._cache.status()
        status.update(
            {
                "store": self._store.source_name,
                "subscriber_count": self._notifier.subscriber_count,
                "active_signatures": [
                    sig.value for sig in self._notifier.active_signatures()
                ],
                "refreshing": sorted(sig.value for sig in self._refreshing),
                "pending_tasks": len(self._tasks),
            }
        )
        return status

    async def aclose(self) -> None:
        """Wait for detached fetches, close subscriptions and the store."""
        self._closed = True
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._notifier.close()
        await self._store.aclose()

    # Internals

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        async for attempt in backend_retrying(
            self._settings.fetch_retry_attempts,
            self._settings.fetch_retry_wait_seconds,
        ):
            with attempt:
                result = await operation()
        return result

    async def _refresh(self, signatures: tuple[AccessLevel, ...]) -> CollectionSnapshot:
        """Fetch all collections and fill the cache for some signatures.

        Raises:
            BackendUnavailable: When every attempt failed
        """
        generation = self._generation
        started = time.perf_counter()
        collections = await self._with_retry(self._store.fetch_all_collections)
        snapshot = CollectionSnapshot(tuple(collections), self._cache.now())

        logger.info(
            "Fetched collections",
            extra={
                "store": self._store.source_name,
                "collection_count": len(collections),
                "signatures": [sig.value for sig in signatures],
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )

        if generation != self._generation:
            logger.info(
                "Discarding fetch started before invalidation",
                extra={"signatures": [sig.value for sig in signatures]},
            )
            return snapshot

        self._cache.put_snapshot(snapshot)
        self._apply_snapshot(snapshot, signatures)
        return snapshot

    def _apply_snapshot(
        self, snapshot: CollectionSnapshot, signatures: Iterable[AccessLevel]
    ) -> None:
        for signature in signatures:
            entry = self._cache.new_entry(
                filter_visible(snapshot.collections, signature),
                fetched_at=snapshot.fetched_at,
            )
            self._cache.put(signature, entry)
            self._notifier.publish(signature, entry.collections)

    def _resolved(
        self, signature: AccessLevel, snapshot: CollectionSnapshot, source: ResultSource
    ) -> ResolvedCollections:
        return ResolvedCollections(
            signature=signature,
            collections=filter_visible(snapshot.collections, signature),
            source=source,
            fetched_at=snapshot.fetched_at,
        )

    def _degraded(
        self, signature: AccessLevel, error: BackendUnavailable
    ) -> ResolvedCollections:
        """Best available list while the backend is down. Not cached or published.

        The signature's own last-known-good entry is used unless the raw
        snapshot is at least as recent, e.g. after an admin write refreshed
        other signatures only.
        """
        entry = self._cache.last_known_good(signature)
        snapshot = self._cache.get_snapshot(include_stale=True)
        if entry is not None and (
            snapshot is None or entry.fetched_at > snapshot.fetched_at
        ):
            result = ResolvedCollections(
                signature=signature,
                collections=list(entry.collections),
                source="stale",
                degraded=True,
                fetched_at=entry.fetched_at,
            )
        elif snapshot is not None:
            result = dataclasses.replace(
                self._resolved(signature, snapshot, "stale"), degraded=True
            )
        else:
            result = ResolvedCollections(
                signature=signature,
                collections=filter_visible(static_fallback_collections(), signature),
                source="fallback",
                degraded=True,
            )

        logger.warning(
            "Serving degraded collection list",
            extra={
                "signature": signature.value,
                "source": result.source,
                "collection_count": len(result.collections),
                "operation": error.operation,
                **get_safe_error_info(error),
            },
        )
        return result

    async def _snapshot_for_lookup(
        self, signature: AccessLevel
    ) -> tuple[CollectionSnapshot, bool]:
        """Raw snapshot for single-collection lookups, and whether it is degraded."""
        snapshot = self._cache.get_snapshot()
        if snapshot is not None:
            return snapshot, False

        try:
            snapshot = await self._shielded(
                self._refresh((signature,)), f"collection-fetch-{signature.value}"
            )
            return snapshot, False
        except BackendUnavailable as e:
            logger.warning(
                "Answering collection lookup from degraded data",
                extra={"signature": signature.value, **get_safe_error_info(e)},
            )

        stale = self._cache.get_snapshot(include_stale=True)
        if stale is None:
            stale = CollectionSnapshot(
                tuple(static_fallback_collections()), self._cache.now()
            )
        return stale, True

    def _maybe_refresh_ahead(self, signature: AccessLevel, age: float) -> None:
        """Spawn one background refresh once an entry is old enough."""
        threshold = self._settings.refresh_ahead_after_seconds
        if threshold is None or self._closed or signature in self._refreshing:
            return
        if age < threshold:
            return

        self._refreshing.add(signature)
        self._spawn(
            self._background_refresh(signature),
            f"collection-refresh-ahead-{signature.value}",
        )

    async def _background_refresh(self, signature: AccessLevel) -> None:
        try:
            await self._refresh((signature,))
        except BackendUnavailable as e:
            logger.warning(
                "Background collection refresh failed",
                extra={"signature": signature.value, **get_safe_error_info(e)},
            )
        except Exception as e:
            logger.error(
                "Unexpected error in background collection refresh",
                extra={"signature": signature.value, **get_safe_error_info(e)},
            )
        finally:
            self._refreshing.discard(signature)

    def _spawn(self, coro: Coroutine[Any, Any, T], name: str) -> "asyncio.Task[T]":
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def _shielded(self, coro: Coroutine[Any, Any, T], name: str) -> T:
        """Run coro as a detached task; cancelling the caller does not cancel it."""
        return await asyncio.shield(self._spawn(coro, name))

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        # Retrieve the exception so an abandoned fetch does not warn at GC
        error = task.exception()
        if error is not None:
            logger.debug(
                "Detached collection task failed",
                extra={"task": task.get_name(), **get_safe_error_info(error)},
            )
