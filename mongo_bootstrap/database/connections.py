"""
MongoDB client construction for the administrative and application users.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConfigurationError as DriverConfigurationError

from mongo_bootstrap.core.errors import ConfigurationError
from mongo_bootstrap.database.target import ADMIN_DB_NAME, APP_USER_MECHANISMS


def create_client(
    uri: str,
    username: str,
    password: str,
    auth_source: str,
    mechanism: Optional[str] = None,
    timeout_ms: int = 5000,
) -> AsyncIOMotorClient:
    """
    Create a MongoDB client bound to one set of credentials.

    The driver authenticates lazily, on the first command sent.

    Raises:
        ConfigurationError: If the driver rejects the URI or options
    """
    options = {
        "username": username,
        "password": password,
        "authSource": auth_source,
        "serverSelectionTimeoutMS": timeout_ms,
    }
    if mechanism:
        options["authMechanism"] = mechanism
    try:
        return AsyncIOMotorClient(uri, **options)
    except DriverConfigurationError as e:
        raise ConfigurationError(f"Invalid MongoDB connection settings: {e}") from e


def admin_client(settings) -> AsyncIOMotorClient:
    """Client authenticated as the administrative user against admin."""
    return create_client(
        settings.mongo_uri,
        settings.mongo_initdb_root_username,
        settings.mongodb_root_password.get_secret_value(),
        auth_source=ADMIN_DB_NAME,
        timeout_ms=settings.mongo_server_selection_timeout_ms,
    )


def app_user_client(settings) -> AsyncIOMotorClient:
    """Client authenticated as the application user against the target db."""
    return create_client(
        settings.mongo_uri,
        settings.mongo_non_root_username,
        settings.mongodb_user_password.get_secret_value(),
        auth_source=settings.mongo_initdb_database,
        mechanism=APP_USER_MECHANISMS[0],
        timeout_ms=settings.mongo_server_selection_timeout_ms,
    )


def close_client(client: Optional[AsyncIOMotorClient]) -> None:
    """Close a client if one was opened."""
    if client is not None:
        client.close()
