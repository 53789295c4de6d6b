"""
Global test fixtures for mongo-bootstrap.

This module provides shared fixtures for all tests including:
- Mock MongoDB catalog (mongomock-motor)
- An in-memory MongoDB user store for the user-management commands
  mongomock does not implement (usersInfo, createUser, updateUser,
  connectionStatus) plus credential checks
- Secret files and environment for the standard scenario
"""

import sys
from pathlib import Path
from typing import Optional
from unittest.mock import patch

import pytest
import pytest_asyncio
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


# =============================================================================
# Standard Scenario
# =============================================================================

ROOT_USERNAME = "root"
ROOT_PASSWORD = "rootpw"
TARGET_DB = "app"
COLLECTION = "items"
APP_USERNAME = "svc"
APP_PASSWORD = "svcpw"

ENV_VARS = {
    "MONGO_INITDB_ROOT_USERNAME": ROOT_USERNAME,
    "MONGO_INITDB_DATABASE": TARGET_DB,
    "MONGO_INITDB_COLLECTION": COLLECTION,
    "MONGO_NON_ROOT_USERNAME": APP_USERNAME,
}

SECRETS = {
    "mongodb_root_password": ROOT_PASSWORD,
    "mongodb_user_password": APP_PASSWORD,
}


# =============================================================================
# In-memory MongoDB
# =============================================================================

class FakeMongoServer:
    """
    Minimal stand-in for mongod's authentication and user catalog.

    Collections live in a mongomock-motor client; users live here.
    """

    def __init__(self, catalog):
        self.catalog = catalog
        self.users: dict[tuple[str, str], dict] = {}
        self.commands: list[tuple[str, str]] = []
        self.clients: list["FakeMotorClient"] = []
        self.reachable = True

    def add_user(
        self,
        db: str,
        user: str,
        pwd: str,
        roles: list,
        mechanisms: tuple = ("SCRAM-SHA-1", "SCRAM-SHA-256"),
    ) -> None:
        self.users[(db, user)] = {
            "user": user,
            "db": db,
            "pwd": pwd,
            "roles": list(roles),
            "mechanisms": list(mechanisms),
        }

    def authenticate(
        self, username: str, password: str, auth_source: str, mechanism: Optional[str]
    ) -> dict:
        doc = self.users.get((auth_source, username))
        if doc is None or doc["pwd"] != password:
            raise OperationFailure("Authentication failed.", code=18)
        if mechanism and mechanism not in doc["mechanisms"]:
            raise OperationFailure(
                f"Unable to use {mechanism} based authentication for user "
                f"without any {mechanism} credentials registered",
                code=334,
            )
        return doc

    def client(self, uri, **options) -> "FakeMotorClient":
        """Drop-in replacement for AsyncIOMotorClient(uri, **options)."""
        client = FakeMotorClient(self, uri, **options)
        self.clients.append(client)
        return client


class FakeMotorClient:
    def __init__(self, server: FakeMongoServer, uri: str, **options):
        self.server = server
        self.uri = uri
        self.options = options
        self.user_doc: Optional[dict] = None
        self.closed = False

    def __getitem__(self, name: str) -> "FakeDatabase":
        return FakeDatabase(self, name)

    @property
    def admin(self) -> "FakeDatabase":
        return self["admin"]

    def close(self):
        self.closed = True

    async def login(self) -> dict:
        if not self.server.reachable:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        if self.user_doc is None:
            self.user_doc = self.server.authenticate(
                self.options.get("username"),
                self.options.get("password"),
                self.options.get("authSource", "admin"),
                self.options.get("authMechanism"),
            )
        return self.user_doc


class FakeDatabase:
    def __init__(self, client: FakeMotorClient, name: str):
        self.client = client
        self.server = client.server
        self.name = name

    async def command(self, command: str, value=1, **kwargs) -> dict:
        session_user = await self.client.login()
        self.server.commands.append((self.name, command))
        users = self.server.users

        if command == "ping":
            return {"ok": 1.0}

        if command == "usersInfo":
            doc = users.get((value["db"], value["user"]))
            public = [
                {k: v for k, v in doc.items() if k != "pwd"}
            ] if doc else []
            return {"users": public, "ok": 1.0}

        if command == "createUser":
            if (self.name, value) in users:
                raise OperationFailure(
                    f'User "{value}@{self.name}" already exists', code=51003
                )
            self.server.add_user(
                self.name, value, kwargs["pwd"], kwargs["roles"], tuple(kwargs["mechanisms"])
            )
            return {"ok": 1.0}

        if command == "updateUser":
            if (self.name, value) not in users:
                raise OperationFailure(f"Could not find user \"{value}@{self.name}\"", code=11)
            doc = users[(self.name, value)]
            doc["pwd"] = kwargs.get("pwd", doc["pwd"])
            doc["roles"] = list(kwargs.get("roles", doc["roles"]))
            doc["mechanisms"] = list(kwargs.get("mechanisms", doc["mechanisms"]))
            return {"ok": 1.0}

        if command == "connectionStatus":
            roles = [
                r if isinstance(r, dict) else {"role": r, "db": session_user["db"]}
                for r in session_user["roles"]
            ]
            return {
                "authInfo": {
                    "authenticatedUsers": [
                        {"user": session_user["user"], "db": session_user["db"]}
                    ],
                    "authenticatedUserRoles": roles,
                },
                "ok": 1.0,
            }

        raise OperationFailure(f"no such command: '{command}'", code=59)

    async def list_collection_names(self, filter=None) -> list[str]:
        await self.client.login()
        self.server.commands.append((self.name, "listCollections"))
        names = await self.server.catalog[self.name].list_collection_names()
        if filter and "name" in filter:
            names = [n for n in names if n == filter["name"]]
        return names

    async def create_collection(self, name: str):
        await self.client.login()
        self.server.commands.append((self.name, "create"))
        return await self.server.catalog[self.name].create_collection(name)


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
        client = AsyncMongoMockClient()
        yield client
        client.close()
    except ImportError:
        pytest.skip("mongomock-motor not installed")


@pytest_asyncio.fixture
async def mongo_server(mock_async_mongo_client):
    """A fake server holding the root user of the standard scenario."""
    server = FakeMongoServer(mock_async_mongo_client)
    server.add_user("admin", ROOT_USERNAME, ROOT_PASSWORD, [{"role": "root", "db": "admin"}])
    yield server


@pytest.fixture
def patch_motor(mongo_server):
    """Route every client the bootstrap creates to the fake server."""
    with patch(
        "mongo_bootstrap.database.connections.AsyncIOMotorClient",
        side_effect=mongo_server.client,
    ) as mock_client:
        yield mock_client


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def secrets_dir(tmp_path) -> Path:
    """Directory with both secret files, newline-terminated like `echo` writes them."""
    directory = tmp_path / "secrets"
    directory.mkdir()
    for name, value in SECRETS.items():
        (directory / name).write_text(f"{value}\n")
    return directory


@pytest.fixture
def bootstrap_env(monkeypatch, secrets_dir):
    """Scenario environment with secrets pointed at the temp directory."""
    for name in [
        "MONGO_URI",
        "MONGO_EXISTING_USER_POLICY",
        "MONGODB_ROOT_PASSWORD",
        "MONGODB_USER_PASSWORD",
        "LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)
    for name, value in ENV_VARS.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("MONGO_SECRETS_DIR", str(secrets_dir))
    return ENV_VARS


@pytest.fixture
def settings(bootstrap_env, secrets_dir):
    """Validated settings for the standard scenario."""
    from mongo_bootstrap.config import load_settings
    return load_settings(secrets_dir=str(secrets_dir), _env_file=None)


@pytest.fixture
def make_settings(bootstrap_env, secrets_dir):
    """Factory for scenario settings with overrides."""
    from mongo_bootstrap.config import load_settings

    def _make(**overrides):
        return load_settings(secrets_dir=str(secrets_dir), _env_file=None, **overrides)
    return _make


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """get_settings is lru_cached; keep tests independent."""
    from mongo_bootstrap.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
