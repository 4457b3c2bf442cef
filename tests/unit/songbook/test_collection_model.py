"""
Unit tests for the Collection model and Realtime Database mapping.
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.songbook.access.enums import AccessDecision, AccessLevel, CollectionCategory
from src.songbook.models.collection import EPOCH, Collection, song_number_sort_key
from src.songbook.models.results import ResolvedCollections, VisibleCollection
from src.songbook.models.stats import CollectionStats


@pytest.fixture
def firebase_item():
    """Collection record as stored under song_collections/{id}."""
    return {
        "name": "Lagu Pujian Masa Ini",
        "description": "Main hymnal",
        "accessLevel": "registered",
        "category": "traditional",
        "songs": {"1": True, "2": True, "10": True, "11": False},
        "songCount": 3,
        "sortOrder": 2,
        "isActive": True,
        "createdAt": "2025-01-05T10:00:00Z",
        "updatedAt": 1736071200000,
        "createdBy": "admin-1",
        "tags": ["hymns"],
        "featuredSong": "10",
    }


class TestFromFirebaseItem:
    """Tests for Collection.from_firebase_item."""

    def test_parses_full_record(self, firebase_item):
        collection = Collection.from_firebase_item("LPMI", firebase_item)

        assert collection.id == "LPMI"
        assert collection.access_level is AccessLevel.REGISTERED
        assert collection.category is CollectionCategory.TRADITIONAL
        assert collection.songs == frozenset({"1", "2", "10"})
        assert collection.sort_order == 2
        assert collection.created_at == datetime(2025, 1, 5, 10, 0, tzinfo=UTC)
        assert collection.updated_at == datetime(2025, 1, 5, 10, 0, tzinfo=UTC)
        assert collection.tags == ("hymns",)
        assert collection.featured_song == "10"

    def test_key_is_authoritative(self, firebase_item):
        firebase_item["id"] = "something_else"
        assert Collection.from_firebase_item("LPMI", firebase_item).id == "LPMI"

    def test_defaults_for_sparse_record(self):
        collection = Collection.from_firebase_item("SRD", {})

        assert collection.access_level is AccessLevel.PUBLIC
        assert collection.category is CollectionCategory.CUSTOM
        assert collection.is_active is True
        assert collection.sort_order == 0
        assert collection.created_at == EPOCH

    def test_explicit_inactive(self):
        collection = Collection.from_firebase_item("old", {"isActive": False})
        assert collection.is_active is False

    def test_array_membership(self):
        """Dense integer keys arrive as an array with a null hole at 0."""
        collection = Collection.from_firebase_item("SRD", {"songs": [None, True, True]})
        assert collection.songs == frozenset({"1", "2"})

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError):
            Collection.from_firebase_item("", {"name": "No id"})

    def test_integer_flag_array_membership(self):
        collection = Collection.from_firebase_item("SRD", {"songs": [None, 1, 0, 1]})
        assert collection.songs == frozenset({"1", "3"})

    def test_song_number_array_membership(self):
        collection = Collection.from_firebase_item("SRD", {"songs": [12, 40, None]})
        assert collection.songs == frozenset({"12", "40"})

    def test_negative_song_count_falls_back_to_membership(self):
        collection = Collection.from_firebase_item(
            "odd", {"songs": {"5": True}, "songCount": -1}
        )
        assert collection.song_count == 1

    def test_missing_song_count_uses_membership(self):
        collection = Collection.from_firebase_item("x", {"songs": {"5": True, "6": True}})
        assert collection.song_count == 2

    def test_negative_song_count_rejected_on_model(self):
        with pytest.raises(ValidationError):
            Collection(id="bad", song_count=-1)

    def test_unparseable_timestamp_falls_back_to_epoch(self):
        collection = Collection.from_firebase_item("x", {"createdAt": "yesterday"})
        assert collection.created_at == EPOCH


class TestToFirebaseItem:
    """Tests for Collection.to_firebase_item."""

    def test_camel_case_keys(self, firebase_item):
        item = Collection.from_firebase_item("LPMI", firebase_item).to_firebase_item()

        assert item["accessLevel"] == "registered"
        assert item["songs"] == {"1": True, "2": True, "10": True}
        assert item["isActive"] is True
        assert item["featuredSong"] == "10"
        assert item["createdAt"].startswith("2025-01-05T10:00:00")

    def test_featured_song_omitted_when_unset(self):
        assert "featuredSong" not in Collection(id="A").to_firebase_item()


class TestCollectionHelpers:
    """Tests for ordering and membership helpers."""

    def test_song_numbers_sorted_numerically(self):
        collection = Collection(id="A", songs=frozenset({"10", "2", "1a", "1"}))
        assert collection.song_numbers == ["1", "2", "10", "1a"]

    def test_sort_key_breaks_ties_by_id(self):
        a = Collection(id="b", sort_order=1)
        b = Collection(id="a", sort_order=1)
        assert sorted([a, b], key=lambda c: c.sort_key)[0].id == "a"

    def test_song_number_sort_key(self):
        assert song_number_sort_key(" 7 ") == (0, 7)
        assert song_number_sort_key("7b") == (1, "7b")

    def test_frozen(self):
        collection = Collection(id="A")
        with pytest.raises(ValidationError):
            collection.access_level = AccessLevel.ADMIN


class TestResultTypes:
    """Tests for VisibleCollection and ResolvedCollections."""

    def test_preview_strips_membership(self):
        collection = Collection(id="B", songs=frozenset({"3"}), song_count=1)
        visible = VisibleCollection.build(collection, AccessDecision.PREVIEW_ONLY)

        assert visible.is_preview
        assert visible.collection.songs == frozenset()
        assert visible.collection.song_count == 1
        # Source object untouched
        assert collection.songs == frozenset({"3"})

    def test_granted_keeps_membership(self):
        collection = Collection(id="A", songs=frozenset({"1"}), song_count=1)
        visible = VisibleCollection.build(collection, AccessDecision.GRANTED)
        assert visible.collection.songs == frozenset({"1"})

    def test_decision_for_unknown_id_is_denied(self):
        resolved = ResolvedCollections(
            signature=AccessLevel.PUBLIC,
            collections=[
                VisibleCollection.build(Collection(id="A"), AccessDecision.GRANTED)
            ],
            source="backend",
        )
        assert resolved.ids == ["A"]
        assert resolved.decision_for("A") is AccessDecision.GRANTED
        assert resolved.decision_for("Z") is AccessDecision.DENIED


class TestCollectionStats:
    """Tests for CollectionStats.from_collections."""

    def test_counts(self):
        stats = CollectionStats.from_collections(
            [
                Collection(id="A", songs=frozenset({"1", "2"})),
                Collection(
                    id="B",
                    access_level=AccessLevel.PREMIUM,
                    category=CollectionCategory.WORSHIP,
                    songs=frozenset({"3"}),
                ),
                Collection(id="C", is_active=False),
            ]
        )

        assert stats.total_collections == 3
        assert stats.active_collections == 2
        assert stats.public_collections == 2
        assert stats.total_songs == 3
        assert stats.access_level_counts == {
            AccessLevel.PUBLIC: 2,
            AccessLevel.PREMIUM: 1,
        }
        assert stats.category_counts[CollectionCategory.WORSHIP] == 1

    def test_empty(self):
        assert CollectionStats.from_collections([]).total_collections == 0
