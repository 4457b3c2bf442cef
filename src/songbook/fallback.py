"""Built-in collection lists.

STATIC_FALLBACK_COLLECTIONS is the last-resort list served while the
backend is unreachable and nothing has ever been cached. Every entry is
public, so the list is visible under every signature and never empty.
Membership is empty: song content comes from the bundled songbook, not
from the collection record.

default_collections() is the seed set of a fresh installation.
"""

from datetime import UTC, datetime

from src.songbook.access.enums import AccessLevel, CollectionCategory
from src.songbook.models.collection import Collection

STATIC_FALLBACK_COLLECTIONS: tuple[Collection, ...] = (
    Collection(
        id="LPMI",
        name="Lagu Pujian Masa Ini",
        access_level=AccessLevel.PUBLIC,
        category=CollectionCategory.TRADITIONAL,
        sort_order=1,
        created_by="system",
    ),
    Collection(
        id="SRD",
        name="Syair Rindu Dendam",
        access_level=AccessLevel.PUBLIC,
        category=CollectionCategory.TRADITIONAL,
        sort_order=2,
        created_by="system",
    ),
    Collection(
        id="Lagu_belia",
        name="Lagu Belia",
        access_level=AccessLevel.PUBLIC,
        category=CollectionCategory.PRAISE,
        sort_order=3,
        created_by="system",
    ),
)

# (id, name, description, level, category, tags)
_SEED_DEFINITIONS: tuple[
    tuple[str, str, str, AccessLevel, CollectionCategory, tuple[str, ...]], ...
] = (
    (
        "public_sunday_service",
        "Sunday Service Songs",
        "Popular songs for Sunday worship services",
        AccessLevel.PUBLIC,
        CollectionCategory.WORSHIP,
        ("worship", "sunday", "service"),
    ),
    (
        "public_traditional",
        "Traditional Hymns",
        "Classic traditional hymns and spiritual songs",
        AccessLevel.PUBLIC,
        CollectionCategory.TRADITIONAL,
        ("traditional", "hymns", "classic"),
    ),
    (
        "public_christmas",
        "Christmas Carols",
        "Festive Christmas songs and carols",
        AccessLevel.PUBLIC,
        CollectionCategory.SEASONAL,
        ("christmas", "seasonal", "carols"),
    ),
    (
        "registered_favorites",
        "Member Favorites",
        "Curated favorites for registered members",
        AccessLevel.REGISTERED,
        CollectionCategory.SPECIAL,
        ("favorites", "members", "curated"),
    ),
    (
        "registered_weekly",
        "Weekly Featured",
        "Featured songs updated weekly for members",
        AccessLevel.REGISTERED,
        CollectionCategory.SPECIAL,
        ("weekly", "featured", "rotating"),
    ),
    (
        "premium_exclusive",
        "Exclusive Worship",
        "Premium-only worship songs with enhanced audio",
        AccessLevel.PREMIUM,
        CollectionCategory.WORSHIP,
        ("premium", "exclusive", "audio"),
    ),
    (
        "premium_advanced",
        "Advanced Hymnal",
        "Rare and advanced hymns for premium members",
        AccessLevel.PREMIUM,
        CollectionCategory.TRADITIONAL,
        ("premium", "advanced", "rare"),
    ),
    (
        "admin_training",
        "Staff Training Songs",
        "Songs for staff training and practice",
        AccessLevel.ADMIN,
        CollectionCategory.TRAINING,
        ("admin", "training", "staff"),
    ),
)


def static_fallback_collections() -> list[Collection]:
    """Return a fresh list of the offline safety-net collections."""
    return list(STATIC_FALLBACK_COLLECTIONS)


def default_collections(now: datetime | None = None) -> list[Collection]:
    """Build the eight seed collections, empty and ready for an admin to fill.

    Args:
        now: Creation timestamp (default: current UTC time)
    """
    now = now or datetime.now(UTC)
    return [
        Collection(
            id=collection_id,
            name=name,
            description=description,
            access_level=level,
            category=category,
            sort_order=position,
            created_at=now,
            updated_at=now,
            created_by="system",
            tags=tags,
        )
        for position, (collection_id, name, description, level, category, tags) in enumerate(
            _SEED_DEFINITIONS, start=1
        )
    ]
