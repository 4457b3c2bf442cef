"""
Log sanitising helpers for the collection access layer.

Collection ids, song numbers and backend error bodies arrive from the
Realtime Database or from deep links, so they are treated as untrusted
input before they reach a log line:
- CR/LF and other control characters are replaced (CWE-117 log injection)
- Values are length-capped to prevent log flooding
- Exceptions are reduced to their type name

Usage:
    logger.warning(
        "Skipping malformed collection record",
        extra={"collection_id": sanitize_for_log(key)},
    )
"""

import re
from typing import Any

# Maximum length for logged untrusted input
MAX_LOG_INPUT_LENGTH = 200


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("LPMI\\n[FAKE] admin granted")
        'LPMI [FAKE] admin granted'
    """
    text = str(value)

    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")

    # Remove other control characters
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def get_safe_error_info(exception: BaseException) -> dict[str, str]:
    """
    Extract safe information from an exception for logging.

    Only the exception type is returned. Backend error messages can echo
    request URLs that carry the database auth token.

    Example:
        >>> get_safe_error_info(TimeoutError("https://db/x.json?auth=..."))
        {'error_type': 'TimeoutError'}
    """
    return {"error_type": type(exception).__name__}
