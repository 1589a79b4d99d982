"""CLI command modules for Cadence.

This package contains the CLI command implementations and the shared
error handling and output utilities they use.
"""

from cadence_cli.cli import config, documents, invoke, schedules

from cadence_cli.cli.exit_codes import ExitCode
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
from cadence_cli.cli.output import (
    format_duration_ms,
    print_json,
    print_key_value,
    print_result,
    print_table,
)

__all__ = [
    # Command modules
    "config",
    "documents",
    "invoke",
    "schedules",
    # Exit codes
    "ExitCode",
    # Error handling
    "CadenceError",
    "ConfigurationError",
    "EngineError",
    "InvocationFailedError",
    "NotFoundError",
    "StorageError",
    "UnauthorizedError",
    "ValidationError",
    "handle_errors",
    # Output
    "format_duration_ms",
    "print_json",
    "print_key_value",
    "print_result",
    "print_table",
]
