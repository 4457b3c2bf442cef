"""Access policy for song collections.

Pure functions: no network, no cache, no state. Rules are evaluated in
order and the first match wins:

1. public      -> granted
2. registered  -> granted if registered, premium or admin; else preview_only
3. premium     -> granted if premium or admin; else preview_only
4. admin       -> granted if admin; else denied (admin content is never teased)
"""

from src.songbook.access.capabilities import UserCapabilities
from src.songbook.access.enums import AccessDecision, AccessLevel

_UPGRADE_MESSAGES: dict[AccessLevel, str] = {
    AccessLevel.PUBLIC: "",
    AccessLevel.REGISTERED: "Sign up free to access this collection",
    AccessLevel.PREMIUM: "Upgrade to Premium for exclusive content",
    AccessLevel.ADMIN: "Admin access required",
}


def can_access(level: AccessLevel, caps: UserCapabilities) -> AccessDecision:
    """Decide what a caller may see of a collection at the given level.

    Args:
        level: Access level of the collection
        caps: Capabilities of the caller

    Returns:
        GRANTED, PREVIEW_ONLY or DENIED

    Examples:
        >>> can_access(AccessLevel.PREMIUM, UserCapabilities.guest())
        <AccessDecision.PREVIEW_ONLY: 'preview_only'>
        >>> can_access(AccessLevel.ADMIN, UserCapabilities(is_premium=True))
        <AccessDecision.DENIED: 'denied'>
    """
    if level is AccessLevel.PUBLIC:
        return AccessDecision.GRANTED

    if level is AccessLevel.REGISTERED:
        if caps.is_registered or caps.is_premium or caps.is_admin:
            return AccessDecision.GRANTED
        return AccessDecision.PREVIEW_ONLY

    if level is AccessLevel.PREMIUM:
        if caps.is_premium or caps.is_admin:
            return AccessDecision.GRANTED
        return AccessDecision.PREVIEW_ONLY

    if caps.is_admin:
        return AccessDecision.GRANTED
    return AccessDecision.DENIED


def is_preview_only(level: AccessLevel, caps: UserCapabilities) -> bool:
    """True when metadata is visible but songs are not."""
    return can_access(level, caps) is AccessDecision.PREVIEW_ONLY


def upgrade_message(level: AccessLevel) -> str:
    """Call-to-action shown on a locked collection card."""
    return _UPGRADE_MESSAGES[level]
