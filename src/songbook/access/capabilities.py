"""Capability derivation for collection access.

A UserCapabilities value is the boolean tuple the access policy reads.
It is derived once per request from the identity/subscription provider,
which keeps its own cache so this never needs a network round-trip.

Capabilities are additive:
- guest: nothing
- anonymous sign-in: authenticated only
- registered: any non-anonymous sign-in
- premium: premium role, or an unexpired premium flag (trial included)
- admin: admin or super_admin role (does not need premium billing)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, model_validator

from src.songbook.access.enums import AccessLevel


class UserCapabilities(BaseModel):
    """Effective rights of the caller for one request."""

    model_config = ConfigDict(frozen=True)

    is_authenticated: bool = False
    is_registered: bool = False
    is_premium: bool = False
    is_admin: bool = False
    is_super_admin: bool = False

    @model_validator(mode="before")
    @classmethod
    def _super_admin_implies_admin(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("is_super_admin"):
            return {**data, "is_admin": True}
        return data

    @classmethod
    def guest(cls) -> UserCapabilities:
        """Capabilities of a signed-out visitor."""
        return cls()

    @classmethod
    def for_signature(cls, signature: AccessLevel) -> UserCapabilities:
        """Canonical (minimal) capability set for a cache signature.

        The access policy only reads capabilities through the signature,
        so evaluating it against this canonical set gives the same answer
        as any real capability set with the same signature.
        """
        if signature is AccessLevel.ADMIN:
            return cls(is_authenticated=True, is_registered=True, is_admin=True)
        if signature is AccessLevel.PREMIUM:
            return cls(is_authenticated=True, is_registered=True, is_premium=True)
        if signature is AccessLevel.REGISTERED:
            return cls(is_authenticated=True, is_registered=True)
        return cls()


class UserProfile(BaseModel):
    """User record as stored by the identity provider."""

    user_id: str | None = None
    auth_type: Literal["guest", "anonymous", "email", "google", "apple"] = "guest"
    role: str = "user"
    is_premium: bool = False
    premium_expires_at: datetime | None = None


_ADMIN_ROLES = frozenset({"admin", "super_admin", "superadmin"})
_SUPER_ADMIN_ROLES = frozenset({"super_admin", "superadmin"})


def _premium_flag_active(expires_at: datetime | None) -> bool:
    if expires_at is None:
        return True
    now = datetime.now(UTC)
    # Assume UTC for naive datetimes
    if expires_at.tzinfo is None:
        return expires_at >= now.replace(tzinfo=None)
    return expires_at >= now


def capabilities_for_profile(profile: UserProfile | None) -> UserCapabilities:
    """Determine capabilities from a user profile.

    Args:
        profile: The stored profile, or None for a signed-out guest

    Returns:
        UserCapabilities for the access policy

    Examples:
        >>> capabilities_for_profile(None).is_authenticated
        False
        >>> capabilities_for_profile(UserProfile(auth_type="email")).is_registered
        True
        >>> capabilities_for_profile(
        ...     UserProfile(auth_type="email", role="super_admin")
        ... ).is_admin
        True
    """
    if profile is None or profile.auth_type == "guest":
        return UserCapabilities.guest()

    # Anonymous sign-in never carries roles (anonymous cannot be admin)
    if profile.auth_type == "anonymous":
        return UserCapabilities(is_authenticated=True)

    role = profile.role.strip().lower()
    is_premium = role == "premium" or (
        profile.is_premium and _premium_flag_active(profile.premium_expires_at)
    )

    return UserCapabilities(
        is_authenticated=True,
        is_registered=True,
        is_premium=is_premium,
        is_admin=role in _ADMIN_ROLES,
        is_super_admin=role in _SUPER_ADMIN_ROLES,
    )


@runtime_checkable
class CapabilityProvider(Protocol):
    """Identity/subscription collaborator.

    Must answer from its own cache: the resolver calls this on the hot
    path and expects no network round-trip.
    """

    def current_capabilities(self) -> UserCapabilities: ...
