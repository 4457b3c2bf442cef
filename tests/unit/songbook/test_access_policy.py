"""
Unit tests for the collection access policy.

Tests cover:
- The four rules in priority order
- preview_only vs denied (admin content is never teased)
- Upgrade messages per level
"""

import pytest

from src.songbook.access.capabilities import UserCapabilities
from src.songbook.access.enums import AccessDecision, AccessLevel
from src.songbook.access.policy import can_access, is_preview_only, upgrade_message

GUEST = UserCapabilities.guest()
ANONYMOUS = UserCapabilities(is_authenticated=True)
REGISTERED = UserCapabilities(is_authenticated=True, is_registered=True)
PREMIUM = UserCapabilities(is_authenticated=True, is_registered=True, is_premium=True)
ADMIN = UserCapabilities(is_authenticated=True, is_registered=True, is_admin=True)
SUPER_ADMIN = UserCapabilities(is_authenticated=True, is_super_admin=True)


class TestCanAccess:
    """Tests for can_access."""

    @pytest.mark.parametrize("caps", [GUEST, ANONYMOUS, REGISTERED, PREMIUM, ADMIN])
    def test_public_always_granted(self, caps):
        assert can_access(AccessLevel.PUBLIC, caps) is AccessDecision.GRANTED

    @pytest.mark.parametrize(
        "caps,expected",
        [
            (GUEST, AccessDecision.PREVIEW_ONLY),
            (ANONYMOUS, AccessDecision.PREVIEW_ONLY),
            (REGISTERED, AccessDecision.GRANTED),
            (PREMIUM, AccessDecision.GRANTED),
            (ADMIN, AccessDecision.GRANTED),
        ],
    )
    def test_registered_level(self, caps, expected):
        assert can_access(AccessLevel.REGISTERED, caps) is expected

    @pytest.mark.parametrize(
        "caps,expected",
        [
            (GUEST, AccessDecision.PREVIEW_ONLY),
            (REGISTERED, AccessDecision.PREVIEW_ONLY),
            (PREMIUM, AccessDecision.GRANTED),
            (ADMIN, AccessDecision.GRANTED),
        ],
    )
    def test_premium_level(self, caps, expected):
        assert can_access(AccessLevel.PREMIUM, caps) is expected

    @pytest.mark.parametrize("caps", [GUEST, ANONYMOUS, REGISTERED, PREMIUM])
    def test_admin_level_denied_without_admin(self, caps):
        """Admin-only content is invisible, not previewed."""
        assert can_access(AccessLevel.ADMIN, caps) is AccessDecision.DENIED

    def test_admin_level_granted_to_admin(self):
        assert can_access(AccessLevel.ADMIN, ADMIN) is AccessDecision.GRANTED

    def test_super_admin_counts_as_admin(self):
        assert can_access(AccessLevel.ADMIN, SUPER_ADMIN) is AccessDecision.GRANTED

    def test_premium_flag_alone_satisfies_registered(self):
        """Premium without the registered flag still opens member collections."""
        caps = UserCapabilities(is_premium=True)
        assert can_access(AccessLevel.REGISTERED, caps) is AccessDecision.GRANTED

    def test_admin_does_not_need_premium_billing(self):
        caps = UserCapabilities(is_admin=True)
        assert can_access(AccessLevel.PREMIUM, caps) is AccessDecision.GRANTED


class TestPreviewAndMessages:
    """Tests for is_preview_only and upgrade_message."""

    def test_is_preview_only_for_locked_premium(self):
        assert is_preview_only(AccessLevel.PREMIUM, REGISTERED) is True

    def test_is_preview_only_false_when_denied(self):
        assert is_preview_only(AccessLevel.ADMIN, GUEST) is False

    def test_is_preview_only_false_when_granted(self):
        assert is_preview_only(AccessLevel.PUBLIC, GUEST) is False

    @pytest.mark.parametrize(
        "level,message",
        [
            (AccessLevel.PUBLIC, ""),
            (AccessLevel.REGISTERED, "Sign up free to access this collection"),
            (AccessLevel.PREMIUM, "Upgrade to Premium for exclusive content"),
            (AccessLevel.ADMIN, "Admin access required"),
        ],
    )
    def test_upgrade_message(self, level, message):
        assert upgrade_message(level) == message
