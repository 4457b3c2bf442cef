"""
Unit tests for songbook logging helpers.
"""

from src.songbook.errors import BackendUnavailable
from src.songbook.logging_utils import get_safe_error_info, sanitize_for_log


class TestSanitizeForLog:
    """Tests for sanitize_for_log function."""

    def test_removes_newlines(self):
        """Injected log lines are flattened."""
        result = sanitize_for_log("LPMI\n[INFO] admin granted")
        assert "\n" not in result
        assert result == "LPMI [INFO] admin granted"

    def test_removes_control_characters(self):
        result = sanitize_for_log("id\x00\x1b[31m")
        assert "\x00" not in result
        assert "\x1b" not in result

    def test_truncates_long_input(self):
        result = sanitize_for_log("a" * 300)
        assert len(result) == 203
        assert result.endswith("...")

    def test_non_string_values(self):
        assert sanitize_for_log(42) == "42"


class TestGetSafeErrorInfo:
    """Tests for get_safe_error_info function."""

    def test_only_type_name(self):
        info = get_safe_error_info(
            BackendUnavailable("fetch_all_collections", "https://db?auth=secret")
        )
        assert info == {"error_type": "BackendUnavailable"}
