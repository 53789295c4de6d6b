"""
Bootstrap errors.

Every failure surfaces as process termination; the exit code tells the
orchestrator (and whoever reads its logs) which class of problem occurred.
"""


class BootstrapError(Exception):
    """Base class for all bootstrap failures."""

    exit_code = 1


class ConfigurationError(BootstrapError):
    """A required environment variable or secret file is missing or invalid."""

    exit_code = 2


class AuthenticationError(BootstrapError):
    """The server rejected a set of credentials."""

    exit_code = 3


class DatabaseUnavailableError(BootstrapError):
    """The server could not be reached within the selection timeout."""

    exit_code = 4


class UserConflictError(BootstrapError):
    """The application user already exists and the policy forbids touching it."""

    exit_code = 5


class RoleScopeError(BootstrapError):
    """A role would grant (or grants) access outside the target database."""

    exit_code = 6
