"""Standard exit codes for Cadence CLI.

This module defines standard exit codes used across the Cadence CLI
for consistent error reporting and scripting support.
"""


class ExitCode:
    """Standard exit codes for Cadence CLI.

    These codes follow common Unix conventions where possible:
    - 0: Success
    - 1: General error
    - 130: Script terminated by Ctrl+C (SIGINT)

    Cadence-specific codes start at 2:
    - 2: Configuration error
    - 3: Invocation finished with failures
    - 4: Execution engine error
    - 6: Storage error
    - 7: Invalid argument
    - 8: Not found
    - 9: Permission denied
    """

    # Standard success
    SUCCESS = 0

    # General errors
    GENERAL_ERROR = 1

    # Cadence-specific errors (2-9)
    CONFIGURATION_ERROR = 2
    INVOCATION_FAILED = 3
    ENGINE_ERROR = 4
    STORAGE_ERROR = 6
    INVALID_ARGUMENT = 7
    NOT_FOUND = 8
    PERMISSION_DENIED = 9

    # Signal-based exits (128 + signal number)
    CANCELLED = 130  # Ctrl+C (SIGINT = 2)

    @classmethod
    def get_name(cls, code: int) -> str:
        """Get the name of an exit code.

        Args:
            code: The exit code value

        Returns:
            Human-readable name for the exit code
        """
        names = {
            cls.SUCCESS: "SUCCESS",
            cls.GENERAL_ERROR: "GENERAL_ERROR",
            cls.CONFIGURATION_ERROR: "CONFIGURATION_ERROR",
            cls.INVOCATION_FAILED: "INVOCATION_FAILED",
            cls.ENGINE_ERROR: "ENGINE_ERROR",
            cls.STORAGE_ERROR: "STORAGE_ERROR",
            cls.INVALID_ARGUMENT: "INVALID_ARGUMENT",
            cls.NOT_FOUND: "NOT_FOUND",
            cls.PERMISSION_DENIED: "PERMISSION_DENIED",
            cls.CANCELLED: "CANCELLED",
        }
        return names.get(code, f"UNKNOWN({code})")

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get the description of an exit code."""
        descriptions = {
            cls.SUCCESS: "Operation completed successfully",
            cls.GENERAL_ERROR: "An unexpected error occurred",
            cls.CONFIGURATION_ERROR: "Configuration error or invalid config file",
            cls.INVOCATION_FAILED: "Invocation finished with failed schedules or errors",
            cls.ENGINE_ERROR: "Execution engine error",
            cls.STORAGE_ERROR: "Document store error",
            cls.INVALID_ARGUMENT: "Invalid command-line argument",
            cls.NOT_FOUND: "Requested resource not found",
            cls.PERMISSION_DENIED: "Permission denied",
            cls.CANCELLED: "Operation cancelled by user",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

    @classmethod
    def from_status(cls, status_code: int) -> int:
        """Map an HTTP-style status code onto an exit code."""
        if 200 <= status_code < 300:
            return cls.SUCCESS
        mapping = {
            400: cls.INVALID_ARGUMENT,
            401: cls.PERMISSION_DENIED,
            403: cls.PERMISSION_DENIED,
            404: cls.NOT_FOUND,
        }
        return mapping.get(status_code, cls.GENERAL_ERROR)
