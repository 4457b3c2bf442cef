"""Shared fixtures for collection access tests.

Provides:
- sample collections matching the guest/premium scenarios
- a FakeClock (see factories.py) driving the cache
- make_resolver: isolated resolver + cache + notifier per test
"""

import pytest

from src.songbook.access.capabilities import UserCapabilities
from src.songbook.access.enums import AccessLevel
from src.songbook.cache.collection_cache import CollectionCache
from src.songbook.config import ResolverSettings
from src.songbook.models.collection import Collection
from src.songbook.notifier import ChangeNotifier
from src.songbook.resolver import CollectionResolver
from src.songbook.store.memory import InMemoryCollectionStore
from tests.unit.songbook.factories import FakeClock, make_collection


@pytest.fixture
def scenario_collections() -> list[Collection]:
    """A public, B registered, C premium but inactive."""
    return [
        make_collection("A", AccessLevel.PUBLIC, songs=("1", "2"), sort_order=1),
        make_collection("B", AccessLevel.REGISTERED, songs=("3",), sort_order=2),
        make_collection(
            "C", AccessLevel.PREMIUM, songs=("4",), is_active=False, sort_order=3
        ),
    ]


@pytest.fixture
def tiered_collections() -> list[Collection]:
    """One active collection per access level, plus an inactive one."""
    return [
        make_collection("LPMI", AccessLevel.PUBLIC, songs=("1", "2", "3"), sort_order=1),
        make_collection("SRD", AccessLevel.REGISTERED, songs=("3", "10"), sort_order=2),
        make_collection("premium_exclusive", AccessLevel.PREMIUM, songs=("7",), sort_order=3),
        make_collection("admin_training", AccessLevel.ADMIN, songs=("9",), sort_order=4),
        make_collection("retired", AccessLevel.PUBLIC, songs=("1",), is_active=False),
    ]


@pytest.fixture
def guest() -> UserCapabilities:
    return UserCapabilities.guest()


@pytest.fixture
def registered() -> UserCapabilities:
    return UserCapabilities(is_authenticated=True, is_registered=True)


@pytest.fixture
def premium() -> UserCapabilities:
    return UserCapabilities(is_authenticated=True, is_registered=True, is_premium=True)


@pytest.fixture
def admin() -> UserCapabilities:
    return UserCapabilities(is_authenticated=True, is_registered=True, is_admin=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ResolverSettings:
    """Fast settings: no backoff, refresh-ahead off."""
    return ResolverSettings(
        cache_ttl_seconds=300,
        fetch_retry_attempts=3,
        fetch_retry_wait_seconds=0,
        refresh_ahead_ratio=0,
    )


@pytest.fixture
def make_resolver(clock, settings):
    """Factory building an isolated resolver around a given store."""

    def _make(
        store: InMemoryCollectionStore,
        resolver_settings: ResolverSettings | None = None,
    ) -> CollectionResolver:
        resolver_settings = resolver_settings or settings
        return CollectionResolver(
            store=store,
            cache=CollectionCache(resolver_settings.cache_ttl_seconds, clock=clock),
            notifier=ChangeNotifier(resolver_settings.subscriber_queue_size),
            settings=resolver_settings,
        )

    return _make
