"""
Collection Resolver Configuration
=================================

Parses and validates resolver settings from environment variables.

For On-Call Engineers:
    Environment variables:
    - COLLECTION_CACHE_TTL_SECONDS: Cache entry lifetime (default 300)
    - COLLECTION_FETCH_TIMEOUT_SECONDS: Backend request timeout (default 8)
    - COLLECTION_FETCH_RETRY_ATTEMPTS: Attempts per fetch (default 3)
    - COLLECTION_FETCH_RETRY_WAIT_SECONDS: Backoff base (default 0.5)
    - COLLECTION_REFRESH_AHEAD_RATIO: Background refresh point (default 0.8)
    - COLLECTION_SUBSCRIBER_QUEUE_SIZE: Buffered updates per subscriber (default 16)
    - FIREBASE_*: see src.songbook.store.firebase

    If users see stale collections for longer than expected, check the
    TTL first, then whether refresh-ahead was disabled (ratio 0 or >= 1).
"""

import logging
import os
from dataclasses import dataclass, field

from src.songbook.store.firebase import FirebaseConfig

logger = logging.getLogger(__name__)

# Configuration constants
DEFAULT_CACHE_TTL_SECONDS = 300.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_WAIT_SECONDS = 0.5
DEFAULT_REFRESH_AHEAD_RATIO = 0.8
DEFAULT_SUBSCRIBER_QUEUE_SIZE = 16


class ConfigurationError(ValueError):
    """Raised when a setting is missing or out of range."""

    pass


@dataclass
class ResolverSettings:
    """Settings for the collection resolver and its collaborators.

    All fields are validated on instantiation.
    """

    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    fetch_retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    fetch_retry_wait_seconds: float = DEFAULT_RETRY_WAIT_SECONDS
    refresh_ahead_ratio: float = DEFAULT_REFRESH_AHEAD_RATIO
    subscriber_queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE
    firebase: FirebaseConfig = field(
        default_factory=lambda: FirebaseConfig(database_url="")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        """
        Validate all configuration values.

        Raises:
            ConfigurationError: If any validation fails
        """
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError(
                f"COLLECTION_CACHE_TTL_SECONDS must be positive, got {self.cache_ttl_seconds}"
            )

        if self.fetch_retry_attempts < 1:
            raise ConfigurationError(
                f"COLLECTION_FETCH_RETRY_ATTEMPTS must be at least 1, got {self.fetch_retry_attempts}"
            )

        if self.fetch_retry_wait_seconds < 0:
            raise ConfigurationError(
                "COLLECTION_FETCH_RETRY_WAIT_SECONDS cannot be negative"
            )

        if self.refresh_ahead_ratio < 0:
            raise ConfigurationError("COLLECTION_REFRESH_AHEAD_RATIO cannot be negative")

        if self.subscriber_queue_size < 1:
            raise ConfigurationError(
                "COLLECTION_SUBSCRIBER_QUEUE_SIZE must be at least 1"
            )

        if self.firebase.timeout_seconds <= 0:
            raise ConfigurationError("COLLECTION_FETCH_TIMEOUT_SECONDS must be positive")

    @property
    def refresh_ahead_enabled(self) -> bool:
        return 0 < self.refresh_ahead_ratio < 1

    @property
    def refresh_ahead_after_seconds(self) -> float | None:
        """Entry age after which a cache hit triggers a background refresh."""
        if not self.refresh_ahead_enabled:
            return None
        return self.cache_ttl_seconds * self.refresh_ahead_ratio

    @classmethod
    def from_env(cls) -> "ResolverSettings":
        """
        Load and validate settings from environment variables.

        Raises:
            ConfigurationError: If a value is not a number or out of range
        """
        try:
            settings = cls(
                cache_ttl_seconds=float(
                    os.environ.get(
                        "COLLECTION_CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS)
                    )
                ),
                fetch_retry_attempts=int(
                    os.environ.get(
                        "COLLECTION_FETCH_RETRY_ATTEMPTS", str(DEFAULT_RETRY_ATTEMPTS)
                    )
                ),
                fetch_retry_wait_seconds=float(
                    os.environ.get(
                        "COLLECTION_FETCH_RETRY_WAIT_SECONDS",
                        str(DEFAULT_RETRY_WAIT_SECONDS),
                    )
                ),
                refresh_ahead_ratio=float(
                    os.environ.get(
                        "COLLECTION_REFRESH_AHEAD_RATIO",
                        str(DEFAULT_REFRESH_AHEAD_RATIO),
                    )
                ),
                subscriber_queue_size=int(
                    os.environ.get(
                        "COLLECTION_SUBSCRIBER_QUEUE_SIZE",
                        str(DEFAULT_SUBSCRIBER_QUEUE_SIZE),
                    )
                ),
                firebase=FirebaseConfig.from_env(),
            )
        except ValueError as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid collection setting: {e}") from e

        logger.info(
            "Configuration loaded",
            extra={
                "cache_ttl_seconds": settings.cache_ttl_seconds,
                "fetch_retry_attempts": settings.fetch_retry_attempts,
                "refresh_ahead_ratio": settings.refresh_ahead_ratio,
                "firebase_configured": bool(settings.firebase.database_url),
            },
        )
        return settings
