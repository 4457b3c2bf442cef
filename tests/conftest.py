"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

Test Environment Separation:
    - Unit and property tests run against the in-memory store or an
      httpx.MockTransport; nothing here talks to a real Realtime Database.
    - Files with "live" in their name are auto-marked with the `live`
      marker and excluded from local runs with `pytest -m "not live"`.

For On-Call Engineers:
    If resolver tests hang:
    1. A gated store was never released (see GatedStore in
       tests/unit/songbook/factories.py)
    2. Retry wait was not zeroed (COLLECTION_FETCH_RETRY_WAIT_SECONDS)

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - Async tests use an explicit @pytest.mark.asyncio
    - TTL tests on the synchronous cache use freezegun; resolver tests use
      a FakeClock because freezegun does not mix with asyncio.sleep
"""

import logging
import os
from pathlib import Path

import pytest

# =============================================================================
# Pytest Marker Registration
# =============================================================================


def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line(
        "markers",
        "live: marks tests that require a real Realtime Database (deselect with '-m \"not live\"')",
    )


def pytest_collection_modifyitems(config, items):
    """
    Auto-mark tests based on their file location.

    Files with "live" in filename are marked as live tests.
    """
    live_marker = pytest.mark.live

    for item in items:
        test_file = Path(item.fspath)
        if "live" in test_file.name.lower():
            item.add_marker(live_marker)


# Set default test environment variables at module load time.
# setdefault() only sets if NOT already present, so CI values take precedence.
os.environ.setdefault("FIREBASE_DATABASE_URL", "https://songbook-test.firebaseio.com")
os.environ.setdefault("COLLECTION_CACHE_TTL_SECONDS", "300")
os.environ.setdefault("COLLECTION_FETCH_RETRY_WAIT_SECONDS", "0")  # No backoff in tests


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


# =============================================================================
# Log Validation Helpers
# =============================================================================
#
# Production code logs normally (never test-aware); tests assert on the
# expected logs explicitly using caplog.


def assert_error_logged(caplog, pattern: str):
    """
    Helper to assert an ERROR log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no ERROR log matches the pattern
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno >= logging.ERROR
    ), f"Expected ERROR log matching '{pattern}' not found"


def assert_warning_logged(caplog, pattern: str):
    """
    Helper to assert a WARNING log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no WARNING log matches the pattern

    Example:
        async def test_outage_degrades(caplog):
            await resolver.get_accessible_collections(caps)
            assert_warning_logged(caplog, "Serving degraded collection list")
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.WARNING
    ), f"Expected WARNING log matching '{pattern}' not found"
