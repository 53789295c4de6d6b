"""
Target database configuration.
Naming rules, the application user's role and its auth mechanism.
"""
from mongo_bootstrap.core.errors import RoleScopeError

ADMIN_DB_NAME = "admin"

# Databases the application user must never own
RESERVED_DATABASES = frozenset({"admin", "local", "config"})

APP_USER_ROLE = "dbOwner"
APP_USER_MECHANISMS = ["SCRAM-SHA-256"]

# Characters MongoDB rejects in database names (any platform)
INVALID_DB_NAME_CHARS = set('/\\. "$*<>:|?\x00')
MAX_DB_NAME_BYTES = 63


def validate_database_name(name: str) -> str:
    """
    Check a target database name.

    Raises:
        ValueError: If the name is empty, reserved or not a legal MongoDB name
    """
    if not name:
        raise ValueError("database name must not be empty")
    if name in RESERVED_DATABASES:
        raise ValueError(f"'{name}' is a reserved database")
    bad = sorted(INVALID_DB_NAME_CHARS.intersection(name))
    if bad:
        raise ValueError(f"database name contains invalid characters: {bad!r}")
    if len(name.encode("utf-8")) > MAX_DB_NAME_BYTES:
        raise ValueError(f"database name must be shorter than {MAX_DB_NAME_BYTES + 1} bytes")
    return name


def validate_collection_name(name: str) -> str:
    """
    Check a collection name.

    Raises:
        ValueError: If the name is empty or not a legal user collection name
    """
    if not name:
        raise ValueError("collection name must not be empty")
    if "$" in name or "\x00" in name:
        raise ValueError("collection name must not contain '$' or NUL")
    if name.startswith("system."):
        raise ValueError("'system.' collections are reserved")
    return name


def app_user_roles(db_name: str) -> list[dict[str, str]]:
    """Roles granted to the application user: ownership of the target db only."""
    return [{"role": APP_USER_ROLE, "db": db_name}]


def ensure_roles_scoped(roles: list[dict], db_name: str) -> None:
    """
    Raise RoleScopeError if any role reaches outside db_name.

    Roles given as bare strings are scoped to the database the user is
    defined in, which is always the target database here.
    """
    for role in roles:
        if isinstance(role, str):
            continue
        role_db = role.get("db")
        if role_db != db_name:
            raise RoleScopeError(
                f"Role '{role.get('role')}' on database '{role_db}' "
                f"is outside target database '{db_name}'"
            )
