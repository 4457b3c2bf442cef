"""
Unit tests for access level and category parsing.
"""

import logging

import pytest

from src.songbook.access.enums import (
    AccessDecision,
    AccessLevel,
    CollectionCategory,
    parse_access_level,
    parse_category,
)
from tests.conftest import assert_warning_logged


class TestParseAccessLevel:
    """Tests for parse_access_level."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("public", AccessLevel.PUBLIC),
            ("Registered", AccessLevel.REGISTERED),
            ("PREMIUM", AccessLevel.PREMIUM),
            (" admin ", AccessLevel.ADMIN),
            ("superadmin", AccessLevel.ADMIN),
            ("super_admin", AccessLevel.ADMIN),
            (AccessLevel.PREMIUM, AccessLevel.PREMIUM),
        ],
    )
    def test_known_values(self, raw, expected):
        assert parse_access_level(raw) is expected

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_defaults_to_public_silently(self, raw, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_access_level(raw) is AccessLevel.PUBLIC
        assert not caplog.records

    def test_unknown_defaults_to_public_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_access_level("vip") is AccessLevel.PUBLIC
        assert_warning_logged(caplog, "Unknown access level")

    def test_non_string_is_total(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert parse_access_level(42) is AccessLevel.PUBLIC


class TestParseCategory:
    """Tests for parse_category."""

    def test_known_category(self):
        assert parse_category("Seasonal") is CollectionCategory.SEASONAL

    @pytest.mark.parametrize("raw", [None, "", "gospel", 7])
    def test_unknown_is_custom(self, raw):
        assert parse_category(raw) is CollectionCategory.CUSTOM


class TestOrdering:
    """Tests for enum ordering helpers."""

    def test_level_rank_is_strictness(self):
        ranks = [level.rank for level in AccessLevel]
        assert ranks == [0, 1, 2, 3]

    def test_decision_rank(self):
        assert (
            AccessDecision.DENIED.rank
            < AccessDecision.PREVIEW_ONLY.rank
            < AccessDecision.GRANTED.rank
        )

    def test_decision_visibility(self):
        assert AccessDecision.GRANTED.is_visible
        assert AccessDecision.PREVIEW_ONLY.is_visible
        assert not AccessDecision.DENIED.is_visible

    def test_display_name(self):
        assert AccessLevel.REGISTERED.display_name == "Members Only"
