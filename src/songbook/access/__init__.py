"""Access control for song collections."""

from src.songbook.access.capabilities import (
    CapabilityProvider,
    UserCapabilities,
    UserProfile,
    capabilities_for_profile,
)
from src.songbook.access.enums import (
    AccessDecision,
    AccessLevel,
    CollectionCategory,
    parse_access_level,
    parse_category,
)
from src.songbook.access.policy import can_access, is_preview_only, upgrade_message

__all__ = [
    "AccessDecision",
    "AccessLevel",
    "CapabilityProvider",
    "CollectionCategory",
    "UserCapabilities",
    "UserProfile",
    "can_access",
    "capabilities_for_profile",
    "is_preview_only",
    "parse_access_level",
    "parse_category",
    "upgrade_message",
]
