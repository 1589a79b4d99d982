"""Tests for error handler module."""

import pytest
import typer
from unittest.mock import patch

from cadence_cli.cli.error_handler import (
    CadenceError,
    ConfigurationError,
    EngineError,
    InvocationFailedError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
    handle_errors,
)
from cadence_cli.cli.exit_codes import ExitCode


class TestCadenceError:
    """Test base CadenceError class."""

    def test_basic_error(self) -> None:
        error = CadenceError("Test error")
        assert error.message == "Test error"
        assert error.exit_code == ExitCode.GENERAL_ERROR
        assert error.details == {}

    def test_error_with_exit_code(self) -> None:
        error = CadenceError("Test error", exit_code=ExitCode.NOT_FOUND)
        assert error.exit_code == ExitCode.NOT_FOUND

    def test_error_str_without_details(self) -> None:
        assert str(CadenceError("Test error")) == "Test error"

    def test_error_str_with_details(self) -> None:
        error = CadenceError("Test error", details={"document": "d1"})
        assert str(error) == "Test error (document=d1)"


class TestErrorSubclasses:
    """Test default exit codes of the error subclasses."""

    @pytest.mark.parametrize("error_class,exit_code", [
        (ConfigurationError, ExitCode.CONFIGURATION_ERROR),
        (InvocationFailedError, ExitCode.INVOCATION_FAILED),
        (EngineError, ExitCode.ENGINE_ERROR),
        (StorageError, ExitCode.STORAGE_ERROR),
        (ValidationError, ExitCode.INVALID_ARGUMENT),
        (NotFoundError, ExitCode.NOT_FOUND),
        (UnauthorizedError, ExitCode.PERMISSION_DENIED),
    ])
    def test_default_exit_code(self, error_class, exit_code) -> None:
        error = error_class("boom")
        assert isinstance(error, CadenceError)
        assert error.exit_code == exit_code


class TestHandleErrors:
    """Test handle_errors decorator."""

    def test_successful_execution(self) -> None:
        @handle_errors
        def test_func():
            return "success"

        assert test_func() == "success"

    def test_cadence_error_handling(self) -> None:
        @handle_errors
        def test_func():
            raise InvocationFailedError("2 schedule(s) failed", details={"failed": 2})

        with pytest.raises(typer.Exit) as exc_info:
            with patch("cadence_cli.cli.error_handler.console") as console:
                test_func()

        assert exc_info.value.exit_code == ExitCode.INVOCATION_FAILED
        console.print.assert_any_call("[red]Error:[/red] 2 schedule(s) failed")
        console.print.assert_any_call("  [dim]failed:[/dim] 2")
        console.print.assert_any_call(
            "[dim]Invocation finished with failed schedules or errors[/dim]"
        )

    def test_keyboard_interrupt_handling(self) -> None:
        @handle_errors
        def test_func():
            raise KeyboardInterrupt()

        with pytest.raises(typer.Exit) as exc_info:
            with patch("cadence_cli.cli.error_handler.console"):
                test_func()

        assert exc_info.value.exit_code == ExitCode.CANCELLED

    def test_generic_exception_handling(self) -> None:
        @handle_errors
        def test_func():
            raise ValueError("Test error")

        with pytest.raises(typer.Exit) as exc_info:
            with patch("cadence_cli.cli.error_handler.console"):
                test_func()

        assert exc_info.value.exit_code == ExitCode.GENERAL_ERROR

    def test_typer_exit_re_raised(self) -> None:
        @handle_errors
        def test_func():
            raise typer.Exit(code=42)

        with pytest.raises(typer.Exit) as exc_info:
            test_func()

        assert exc_info.value.exit_code == 42
