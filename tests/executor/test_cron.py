"""Tests for cron evaluation."""

from datetime import datetime, timezone

import pytest

from cadence_cli.executor.cron import is_valid_pattern, next_due, validate_pattern


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestValidatePattern:
    """Test cron pattern validation."""

    @pytest.mark.parametrize("pattern", [
        "* * * * *",
        "0 0 * * *",
        "*/15 9-17 * * 1-5",
        "0 12 1 */2 *",
    ])
    def test_valid_patterns(self, pattern: str) -> None:
        assert validate_pattern(pattern) is None
        assert is_valid_pattern(pattern)

    @pytest.mark.parametrize("pattern", [None, "", "   ", 42])
    def test_missing_pattern(self, pattern) -> None:
        assert validate_pattern(pattern) == "Cron pattern must be a non-empty string"

    def test_wrong_field_count(self) -> None:
        """Test that only 5-field patterns are accepted."""
        assert "expected 5 fields" in validate_pattern("* * * *")
        assert "expected 5 fields" in validate_pattern("0 0 0 * * *")

    def test_out_of_range_field(self) -> None:
        assert not is_valid_pattern("61 * * * *")

    def test_garbage(self) -> None:
        assert not is_valid_pattern("not a cron at all")


class TestNextDue:
    """Test next due instant computation."""

    def test_daily_midnight(self) -> None:
        due = next_due("0 0 * * *", "UTC", utc(2024, 1, 1, 0, 5))
        assert due.ok
        assert due.instant == utc(2024, 1, 2, 0, 0)

    def test_strictly_after_reference(self) -> None:
        """Test that a reference exactly on a tick yields the following tick."""
        due = next_due("0 0 * * *", "UTC", utc(2024, 1, 2, 0, 0))
        assert due.instant == utc(2024, 1, 3, 0, 0)

    def test_every_minute(self) -> None:
        due = next_due("* * * * *", "UTC", utc(2024, 1, 1, 10, 0, 30))
        assert due.instant == utc(2024, 1, 1, 10, 1)

    def test_timezone_is_applied(self) -> None:
        """Test that fields are interpreted in the schedule's timezone."""
        # Berlin is UTC+1 in January
        due = next_due("0 9 * * *", "Europe/Berlin", utc(2024, 1, 15, 0, 0))
        assert due.instant == utc(2024, 1, 15, 8, 0)

    def test_returns_utc(self) -> None:
        due = next_due("0 9 * * *", "America/New_York", utc(2024, 7, 1, 0, 0))
        assert due.instant.tzinfo == timezone.utc
        # New York is UTC-4 in July
        assert due.instant == utc(2024, 7, 1, 13, 0)

    def test_naive_reference_is_utc(self) -> None:
        due = next_due("0 0 * * *", "UTC", datetime(2024, 1, 1, 0, 5))
        assert due.instant == utc(2024, 1, 2, 0, 0)

    def test_empty_timezone_defaults_to_utc(self) -> None:
        due = next_due("0 0 * * *", "", utc(2024, 1, 1, 0, 5))
        assert due.instant == utc(2024, 1, 2, 0, 0)

    def test_invalid_pattern_is_an_error_value(self) -> None:
        due = next_due("bogus", "UTC", utc(2024, 1, 1))
        assert not due.ok
        assert due.instant is None
        assert due.error

    def test_unknown_timezone_is_an_error_value(self) -> None:
        due = next_due("0 0 * * *", "Mars/Olympus_Mons", utc(2024, 1, 1))
        assert not due.ok
        assert "Unknown timezone" in due.error
