"""Signature-keyed cache of resolved collection lists.

Cache entries are keyed by capability signature, one of exactly four
values (public, registered, premium, admin), not by user. A premium user
sees a strict superset of what a registered user sees, so every user
with the same signature shares one entry, and switching accounts can
never show another tier's list.

Entries are immutable. A refresh always stores a new CacheEntry, so
concurrent readers see either the old list or the new one, never a mix.
The cache never suspends and needs no lock: the only shared mutation is
whole-entry replacement (last write wins).

Besides the fresh view, the cache keeps:
- the raw (unfiltered) snapshot of the last backend fetch, used to
  answer deep links and to re-filter when a signature has no entry
- last-known-good entries, which survive TTL expiry and invalidate_all()
  and only serve degraded fallbacks when the backend is down
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from src.songbook.access.capabilities import UserCapabilities
from src.songbook.access.enums import AccessLevel
from src.songbook.models.collection import Collection
from src.songbook.models.results import VisibleCollection

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


def signature_of(caps: UserCapabilities) -> AccessLevel:
    """Reduce a capability set to the highest tier it satisfies.

    Examples:
        >>> signature_of(UserCapabilities(is_registered=True, is_premium=True))
        <AccessLevel.PREMIUM: 'premium'>
        >>> signature_of(UserCapabilities(is_authenticated=True))
        <AccessLevel.PUBLIC: 'public'>
    """
    if caps.is_admin or caps.is_super_admin:
        return AccessLevel.ADMIN
    if caps.is_premium:
        return AccessLevel.PREMIUM
    if caps.is_registered:
        return AccessLevel.REGISTERED
    return AccessLevel.PUBLIC


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate as hits / total lookups."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def reset(self) -> None:
        """Reset all counters to zero."""
        self.hits = 0
        self.misses = 0
        self.invalidations = 0


@dataclass(frozen=True)
class CacheEntry:
    """Visible collections for one signature at one point in time."""

    collections: tuple[VisibleCollection, ...]
    fetched_at: float  # epoch seconds of the backend fetch
    ttl_seconds: float

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_expired(self, now: float) -> bool:
        """Expired strictly after ttl: still fresh at exactly fetched_at + ttl."""
        return now - self.fetched_at > self.ttl_seconds


@dataclass(frozen=True)
class CollectionSnapshot:
    """Unfiltered result of one backend fetch, inactive collections included."""

    collections: tuple[Collection, ...]
    fetched_at: float

    def find(self, collection_id: str) -> Collection | None:
        for collection in self.collections:
            if collection.id == collection_id:
                return collection
        return None

    def by_id(self) -> dict[str, Collection]:
        return {c.id: c for c in self.collections}


class CollectionCache:
    """In-memory, TTL-bounded cache with one entry per signature.

    Expired entries read as absent but are only evicted lazily, on the
    next put().

    Attributes:
        ttl_seconds: Lifetime of each entry
        stats: Hit/miss counters for monitoring
    """

    signature_of = staticmethod(signature_of)

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_seconds: Entry lifetime (default 5 minutes)
            clock: Epoch-seconds source; defaults to time.time
        """
        self.ttl_seconds = ttl_seconds
        self.stats = CacheStats()
        self._clock = clock
        self._entries: dict[AccessLevel, CacheEntry] = {}
        self._last_known_good: dict[AccessLevel, CacheEntry] = {}
        self._snapshot: CollectionSnapshot | None = None
        self._last_snapshot: CollectionSnapshot | None = None

    def now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return time.time()

    def new_entry(
        self, collections: list[VisibleCollection], fetched_at: float | None = None
    ) -> CacheEntry:
        """Build an entry stamped with this cache's ttl."""
        return CacheEntry(
            collections=tuple(collections),
            fetched_at=self.now() if fetched_at is None else fetched_at,
            ttl_seconds=self.ttl_seconds,
        )

    def get(self, signature: AccessLevel) -> CacheEntry | None:
        """Return the fresh entry for a signature, or None.

        Args:
            signature: Cache signature

        Returns:
            The entry if present and within its ttl, None otherwise
        """
        entry = self._entries.get(signature)
        if entry is None or entry.is_expired(self.now()):
            self.stats.misses += 1
            logger.debug("Collection cache miss", extra={"signature": signature.value})
            return None

        self.stats.hits += 1
        logger.debug("Collection cache hit", extra={"signature": signature.value})
        return entry

    def put(self, signature: AccessLevel, entry: CacheEntry) -> None:
        """Store an entry, overwriting unconditionally.

        Expired entries of every signature are evicted first.
        """
        now = self.now()
        expired = [sig for sig, e in self._entries.items() if e.is_expired(now)]
        for sig in expired:
            del self._entries[sig]

        self._entries[signature] = entry
        self._last_known_good[signature] = entry

    def last_known_good(self, signature: AccessLevel) -> CacheEntry | None:
        """Most recent entry ever stored for a signature, even if expired."""
        return self._last_known_good.get(signature)

    def put_snapshot(self, snapshot: CollectionSnapshot) -> None:
        self._snapshot = snapshot
        self._last_snapshot = snapshot

    def get_snapshot(self, include_stale: bool = False) -> CollectionSnapshot | None:
        """Return the raw snapshot.

        Args:
            include_stale: Also return an expired or invalidated snapshot
        """
        if include_stale:
            return self._last_snapshot
        snapshot = self._snapshot
        if snapshot is None or self.now() - snapshot.fetched_at > self.ttl_seconds:
            return None
        return snapshot

    def invalidate_all(self) -> None:
        """Drop every fresh entry regardless of ttl.

        Called after any administrative write. Last-known-good data is
        kept for degraded fallbacks only.
        """
        dropped = len(self._entries)
        self._entries = {}
        self._snapshot = None
        self.stats.invalidations += 1
        logger.info("Collection cache invalidated", extra={"dropped_entries": dropped})

    def clear(self) -> None:
        """Remove everything, fallback data included, and reset stats."""
        self._entries = {}
        self._last_known_good = {}
        self._snapshot = None
        self._last_snapshot = None
        self.stats.reset()

    def status(self) -> dict[str, Any]:
        """Per-signature freshness and stats for debug screens."""
        now = self.now()
        signatures: dict[str, Any] = {}
        for signature in AccessLevel:
            entry = self._entries.get(signature)
            stale = self._last_known_good.get(signature)
            signatures[signature.value] = {
                "cached": entry is not None,
                "fresh": entry is not None and not entry.is_expired(now),
                "age_seconds": round(entry.age(now), 3) if entry else None,
                "collection_count": len(entry.collections) if entry else 0,
                "has_fallback": stale is not None,
            }
        return {
            "ttl_seconds": self.ttl_seconds,
            "signatures": signatures,
            "snapshot_age_seconds": (
                round(now - self._snapshot.fetched_at, 3) if self._snapshot else None
            ),
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "hit_rate": round(self.stats.hit_rate, 3),
            "invalidations": self.stats.invalidations,
        }
