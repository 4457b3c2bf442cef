"""Canonical enum definitions for collection access control.

Access levels are ordered by strictness:
- public: anyone, including guests
- registered: signed-in, non-anonymous users
- premium: active premium subscription or trial
- admin: administrators (super admins included)

The same four values double as cache signatures: a capability set is
reduced to the highest level it satisfies.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from src.songbook.logging_utils import sanitize_for_log

logger = logging.getLogger(__name__)


class AccessLevel(StrEnum):
    """Access tier required to see a collection."""

    PUBLIC = "public"
    REGISTERED = "registered"
    PREMIUM = "premium"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        """Position in the strictness ordering (public = 0)."""
        return _LEVEL_RANK[self]

    @property
    def display_name(self) -> str:
        return _LEVEL_DISPLAY_NAMES[self]


_LEVEL_RANK: dict[AccessLevel, int] = {
    AccessLevel.PUBLIC: 0,
    AccessLevel.REGISTERED: 1,
    AccessLevel.PREMIUM: 2,
    AccessLevel.ADMIN: 3,
}

_LEVEL_DISPLAY_NAMES: dict[AccessLevel, str] = {
    AccessLevel.PUBLIC: "Public",
    AccessLevel.REGISTERED: "Members Only",
    AccessLevel.PREMIUM: "Premium",
    AccessLevel.ADMIN: "Admin Only",
}

# Legacy spellings written by older admin builds
_ACCESS_LEVEL_ALIASES: dict[str, AccessLevel] = {
    "superadmin": AccessLevel.ADMIN,
    "super_admin": AccessLevel.ADMIN,
}


class AccessDecision(StrEnum):
    """Outcome of an access check.

    granted: metadata and songs visible
    preview_only: metadata visible, songs hidden
    denied: collection is invisible
    """

    GRANTED = "granted"
    PREVIEW_ONLY = "preview_only"
    DENIED = "denied"

    @property
    def rank(self) -> int:
        """Permissiveness (denied = 0, granted = 2)."""
        return _DECISION_RANK[self]

    @property
    def is_visible(self) -> bool:
        return self is not AccessDecision.DENIED


_DECISION_RANK: dict[AccessDecision, int] = {
    AccessDecision.DENIED: 0,
    AccessDecision.PREVIEW_ONLY: 1,
    AccessDecision.GRANTED: 2,
}


class CollectionCategory(StrEnum):
    """Descriptive classification tag. Not used for access decisions."""

    TRADITIONAL = "traditional"
    MODERN = "modern"
    SEASONAL = "seasonal"
    SPECIAL = "special"
    WORSHIP = "worship"
    PRAISE = "praise"
    TRAINING = "training"
    CUSTOM = "custom"


# Immutable sets for O(1) validation
VALID_ACCESS_LEVELS: frozenset[str] = frozenset(level.value for level in AccessLevel)
VALID_CATEGORIES: frozenset[str] = frozenset(c.value for c in CollectionCategory)


def parse_access_level(value: object) -> AccessLevel:
    """Parse a stored access level string. Total: never raises.

    Matching is case-insensitive. "superadmin" and "super_admin" map to
    ADMIN. Missing values mean PUBLIC silently (the field was optional in
    early data); any other unrecognised value also maps to PUBLIC but logs
    a warning so the bad record can be fixed.

    Args:
        value: Raw value from the backend payload

    Returns:
        The parsed AccessLevel
    """
    if value is None or value == "":
        return AccessLevel.PUBLIC

    if isinstance(value, AccessLevel):
        return value

    normalized = str(value).strip().lower()
    if normalized in VALID_ACCESS_LEVELS:
        return AccessLevel(normalized)
    if normalized in _ACCESS_LEVEL_ALIASES:
        return _ACCESS_LEVEL_ALIASES[normalized]

    logger.warning(
        "Unknown access level, defaulting to public",
        extra={"access_level": sanitize_for_log(value, max_length=50)},
    )
    return AccessLevel.PUBLIC


def parse_category(value: object) -> CollectionCategory:
    """Parse a stored category string; unknown values become CUSTOM."""
    if isinstance(value, CollectionCategory):
        return value
    if value is None:
        return CollectionCategory.CUSTOM
    normalized = str(value).strip().lower()
    if normalized in VALID_CATEGORIES:
        return CollectionCategory(normalized)
    return CollectionCategory.CUSTOM
