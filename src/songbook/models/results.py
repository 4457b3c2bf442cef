"""Result types returned by the collection resolver.

A degraded result is a successful answer built from stale cache data or
the static fallback list. The presentation layer shows a passive
"offline/cached" indicator for it, never an error dialog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict

from src.songbook.access.enums import AccessDecision, AccessLevel
from src.songbook.models.collection import Collection
from src.songbook.models.song import SongRef

ResultSource = Literal["cache", "backend", "stale", "fallback"]


class VisibleCollection(BaseModel):
    """A collection as seen under one capability signature.

    For preview_only the membership set is stripped: name, description
    and song count stay visible, the songs do not.
    """

    model_config = ConfigDict(frozen=True)

    collection: Collection
    decision: AccessDecision

    @property
    def id(self) -> str:
        return self.collection.id

    @property
    def is_preview(self) -> bool:
        return self.decision is AccessDecision.PREVIEW_ONLY

    @classmethod
    def build(cls, collection: Collection, decision: AccessDecision) -> VisibleCollection:
        if decision is AccessDecision.PREVIEW_ONLY and collection.songs:
            collection = collection.model_copy(update={"songs": frozenset()})
        return cls(collection=collection, decision=decision)


@dataclass
class ResolvedCollections:
    """Accessible collections for one signature.

    Attributes:
        signature: Cache signature the list was resolved under
        collections: Visible collections, sorted by (sort_order, id)
        source: Where the list came from
        degraded: True for stale or fallback data
        fetched_at: Epoch seconds of the underlying backend fetch
    """

    signature: AccessLevel
    collections: list[VisibleCollection]
    source: ResultSource
    degraded: bool = False
    fetched_at: float | None = None

    @property
    def ids(self) -> list[str]:
        return [c.id for c in self.collections]

    def decision_for(self, collection_id: str) -> AccessDecision:
        """Decision for one id; DENIED when the id is not in the list."""
        for visible in self.collections:
            if visible.id == collection_id:
                return visible.decision
        return AccessDecision.DENIED


@dataclass
class AccessResult:
    """Single-collection access check for deep links.

    Attributes:
        collection_id: Requested id
        decision: Access outcome
        collection: The visible collection, None when denied
        reason: Why access is limited (upgrade_required, admin_only, inactive)
        upgrade_message: Call-to-action text for locked collections
        song_number: Requested song, if any
        song_in_collection: Membership of song_number; None when not asked
            or when the membership is hidden from the caller
        degraded: True when answered from stale or fallback data
    """

    collection_id: str
    decision: AccessDecision
    collection: VisibleCollection | None = None
    reason: str | None = None
    upgrade_message: str = ""
    song_number: str | None = None
    song_in_collection: bool | None = None
    degraded: bool = False


@dataclass
class CollectionSongsResult:
    """Songs of one collection; empty unless access is granted."""

    collection_id: str
    decision: AccessDecision
    songs: list[SongRef] = field(default_factory=list)
    degraded: bool = False
