"""Tests for exit codes module."""

import pytest

from cadence_cli.cli.exit_codes import ExitCode


class TestExitCode:
    """Test exit code constants."""

    def test_success_code(self) -> None:
        assert ExitCode.SUCCESS == 0

    def test_general_error_code(self) -> None:
        assert ExitCode.GENERAL_ERROR == 1

    def test_configuration_error_code(self) -> None:
        assert ExitCode.CONFIGURATION_ERROR == 2

    def test_invocation_failed_code(self) -> None:
        """Test the code used when an invocation reports failures."""
        assert ExitCode.INVOCATION_FAILED == 3

    def test_engine_error_code(self) -> None:
        assert ExitCode.ENGINE_ERROR == 4

    def test_remaining_codes(self) -> None:
        assert ExitCode.STORAGE_ERROR == 6
        assert ExitCode.INVALID_ARGUMENT == 7
        assert ExitCode.NOT_FOUND == 8
        assert ExitCode.PERMISSION_DENIED == 9

    def test_cancelled_code(self) -> None:
        assert ExitCode.CANCELLED == 130


class TestExitCodeGetName:
    """Test get_name method."""

    def test_get_name_success(self) -> None:
        assert ExitCode.get_name(ExitCode.SUCCESS) == "SUCCESS"

    def test_get_name_invocation_failed(self) -> None:
        assert ExitCode.get_name(ExitCode.INVOCATION_FAILED) == "INVOCATION_FAILED"

    def test_get_name_unknown(self) -> None:
        assert ExitCode.get_name(999) == "UNKNOWN(999)"


class TestExitCodeGetDescription:
    """Test get_description method."""

    def test_get_description_success(self) -> None:
        assert ExitCode.get_description(ExitCode.SUCCESS) == "Operation completed successfully"

    def test_get_description_unknown(self) -> None:
        assert ExitCode.get_description(999) == "Unknown exit code: 999"


class TestExitCodeFromStatus:
    """Test mapping trigger status codes onto exit codes."""

    @pytest.mark.parametrize("status,expected", [
        (200, ExitCode.SUCCESS),
        (204, ExitCode.SUCCESS),
        (400, ExitCode.INVALID_ARGUMENT),
        (401, ExitCode.PERMISSION_DENIED),
        (403, ExitCode.PERMISSION_DENIED),
        (404, ExitCode.NOT_FOUND),
        (500, ExitCode.GENERAL_ERROR),
    ])
    def test_from_status(self, status: int, expected: int) -> None:
        assert ExitCode.from_status(status) == expected
