"""Retry policy for transient collection backend failures.

For On-Call Engineers:
    - Only BackendUnavailable is retried; CollectionNotFound never is
    - Each retry is logged with attempt number
    - Defaults: 3 attempts with exponential backoff (0.5s, 1s)
    - After the last attempt the resolver degrades to cached/static data
"""

import logging

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.songbook.errors import BackendUnavailable

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 4.0


def _is_retryable(exception: BaseException) -> bool:
    """Check if a store exception is worth another attempt."""
    return isinstance(exception, BackendUnavailable)


def backend_retrying(attempts: int = 3, wait_seconds: float = 0.5) -> AsyncRetrying:
    """Build an async retry controller for store calls.

    Args:
        attempts: Total attempts including the first
        wait_seconds: Backoff multiplier; 0 retries immediately

    Returns:
        AsyncRetrying that reraises the last BackendUnavailable

    Example:
        async for attempt in backend_retrying(3, 0.5):
            with attempt:
                collections = await store.fetch_all_collections()
    """
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(
            multiplier=wait_seconds, min=wait_seconds, max=MAX_BACKOFF_SECONDS
        ),
        retry=retry_if_exception(_is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
