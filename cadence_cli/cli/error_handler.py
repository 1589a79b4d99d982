"""Global exception handling for Cadence CLI.

This module provides centralized error handling through custom exception
classes and a decorator that ensures consistent error reporting and
exit codes across all CLI commands.
"""

from functools import wraps
from typing import Callable, TypeVar, Any
import logging

import typer
from rich.console import Console

from cadence_cli.cli.exit_codes import ExitCode

# Console for error output (stderr)
console = Console(stderr=True)

# Logger for error logging
logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class CadenceError(Exception):
    """Base exception for Cadence CLI.

    All custom exceptions in Cadence CLI should inherit from this class
    to ensure proper error handling and exit codes.

    Attributes:
        message: Error message
        exit_code: Exit code to use when exiting
        details: Optional dictionary of additional error details
    """

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(CadenceError):
    """Configuration-related error.

    Examples:
        - Invalid configuration file format
        - Configuration validation failure
    """

    exit_code = ExitCode.CONFIGURATION_ERROR


class InvocationFailedError(CadenceError):
    """An invocation finished, but not cleanly.

    Raised after the summary has been shown when schedules failed or
    the invocation could not run to completion.
    """

    exit_code = ExitCode.INVOCATION_FAILED


class EngineError(CadenceError):
    """Execution engine error."""

    exit_code = ExitCode.ENGINE_ERROR


class StorageError(CadenceError):
    """Document store error.

    Examples:
        - Database not reachable
        - Document write failure
    """

    exit_code = ExitCode.STORAGE_ERROR


class ValidationError(CadenceError):
    """Validation error for user input.

    Examples:
        - Import file is not a JSON object
        - Invalid cron pattern
    """

    exit_code = ExitCode.INVALID_ARGUMENT


class NotFoundError(CadenceError):
    """Resource not found error.

    Examples:
        - Document not found
        - Schedule not found
    """

    exit_code = ExitCode.NOT_FOUND


class UnauthorizedError(CadenceError):
    """Trigger request rejected by the authorization check."""

    exit_code = ExitCode.PERMISSION_DENIED


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling across CLI commands.

    This decorator catches all exceptions and converts them to appropriate
    error messages and exit codes. It handles:

    - CadenceError subclasses: Display error message with appropriate exit code
    - KeyboardInterrupt: Show cancellation message with exit code 130
    - Other exceptions: Show generic error with option for verbose details

    Example:
        @app.command()
        @handle_errors
        def my_command():
            raise ConfigurationError("Invalid config")
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CadenceError as e:
            logger.error(
                f"{func.__name__} failed with {ExitCode.get_name(e.exit_code)}: {e.message}",
                extra={"exit_code": e.exit_code, "details": e.details},
            )

            console.print(f"[red]Error:[/red] {e.message}")
            for key, value in e.details.items():
                console.print(f"  [dim]{key}:[/dim] {value}")
            console.print(f"[dim]{ExitCode.get_description(e.exit_code)}[/dim]")

            raise typer.Exit(code=e.exit_code)

        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user.[/yellow]")
            logger.info("Operation cancelled by user (KeyboardInterrupt)")
            raise typer.Exit(code=ExitCode.CANCELLED)

        except typer.Exit:
            raise

        except Exception as e:
            logger.exception("Unexpected error occurred")
            console.print(f"[red]Unexpected error:[/red] {e}")
            console.print("[dim]Run with --verbose for more details[/dim]")
            raise typer.Exit(code=ExitCode.GENERAL_ERROR)

    return wrapper  # type: ignore[return-value]
