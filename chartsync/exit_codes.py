"""
Standard exit codes for chartsync commands.

Following Unix/POSIX conventions for command-line tools.
"""
from .errors import (
    ChartSyncError,
    ConfigKeyError,
    ConfigLookupError,
    FetchError,
    ParseError,
    PersistenceError,
    TrustParseError,
)

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors (including failed sync passes)
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NO_REPOS_FOUND = 64      # No repositories configured or matching
NETWORK_ERROR = 68       # Index could not be fetched
CONFIG_ERROR = 66        # Configuration or trust material error
DATA_ERROR = 70          # Malformed index document
STORAGE_ERROR = 74       # Record store unavailable
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for chartsync errors, most specific first
EXCEPTION_EXIT_CODES = (
    (ConfigLookupError, CONFIG_ERROR),
    (ConfigKeyError, CONFIG_ERROR),
    (TrustParseError, CONFIG_ERROR),
    (FetchError, NETWORK_ERROR),
    (ParseError, DATA_ERROR),
    (PersistenceError, STORAGE_ERROR),
    (ChartSyncError, GENERAL_ERROR),
)


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, KeyboardInterrupt):
        return INTERRUPTED
    for exc_type, code in EXCEPTION_EXIT_CODES:
        if isinstance(exc, exc_type):
            return code
    return GENERAL_ERROR


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class NoReposFoundError(CommandError):
    """Raised when no repositories match the given criteria."""
    def __init__(self, message: str = "No repositories found"):
        super().__init__(message, NO_REPOS_FOUND)
