"""
Core module - error taxonomy.
"""
from mongo_bootstrap.core.errors import (
    BootstrapError,
    ConfigurationError,
    AuthenticationError,
    DatabaseUnavailableError,
    UserConflictError,
    RoleScopeError,
)

__all__ = [
    "BootstrapError",
    "ConfigurationError",
    "AuthenticationError",
    "DatabaseUnavailableError",
    "UserConflictError",
    "RoleScopeError",
]
