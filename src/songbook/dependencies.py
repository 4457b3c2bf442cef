"""Composition root for the collection subsystem.

Builds the store, cache, notifier and resolver explicitly. There are no
module-level singletons: the application owns the returned objects and
closes them with ``await resolver.aclose()``.

Usage:
    from src.songbook.dependencies import build_collection_resolver

    resolver = build_collection_resolver()
    collections = await resolver.get_accessible_collections(caps)
"""

import logging
from collections.abc import Callable

from src.songbook.admin import CollectionAdminService
from src.songbook.cache.collection_cache import CollectionCache
from src.songbook.config import ConfigurationError, ResolverSettings
from src.songbook.notifier import ChangeNotifier
from src.songbook.resolver import CollectionResolver
from src.songbook.store.base import CollectionStore
from src.songbook.store.firebase import FirebaseCollectionStore

logger = logging.getLogger(__name__)


def build_collection_store(settings: ResolverSettings) -> CollectionStore:
    """Create the Realtime Database store from settings.

    Raises:
        ConfigurationError: If FIREBASE_DATABASE_URL is not set
    """
    if not settings.firebase.database_url:
        raise ConfigurationError("FIREBASE_DATABASE_URL is required")
    return FirebaseCollectionStore(settings.firebase)


def build_collection_resolver(
    settings: ResolverSettings | None = None,
    store: CollectionStore | None = None,
    clock: Callable[[], float] | None = None,
) -> CollectionResolver:
    """Wire a resolver with its own cache and notifier.

    Args:
        settings: Defaults to ResolverSettings.from_env()
        store: Backend override (tests, offline mode); defaults to Firebase
        clock: Epoch-seconds source for the cache

    Returns:
        A fresh, isolated CollectionResolver
    """
    settings = settings or ResolverSettings.from_env()
    store = store or build_collection_store(settings)

    resolver = CollectionResolver(
        store=store,
        cache=CollectionCache(settings.cache_ttl_seconds, clock=clock),
        notifier=ChangeNotifier(settings.subscriber_queue_size),
        settings=settings,
    )
    logger.info(
        "Collection resolver created",
        extra={
            "store": store.source_name,
            "cache_ttl_seconds": settings.cache_ttl_seconds,
            "refresh_ahead": settings.refresh_ahead_enabled,
        },
    )
    return resolver


def build_admin_service(resolver: CollectionResolver) -> CollectionAdminService:
    """Admin service writing through the resolver's own store."""
    return CollectionAdminService(resolver.store, resolver)
