"""
Bootstrap service: admin login, collection, application user, verification.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import (
    CollectionInvalid,
    ConnectionFailure,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from mongo_bootstrap.config import Settings
from mongo_bootstrap.core.errors import (
    AuthenticationError,
    DatabaseUnavailableError,
    UserConflictError,
)
from mongo_bootstrap.database.connections import admin_client, app_user_client, close_client
from mongo_bootstrap.database.target import ADMIN_DB_NAME, ensure_roles_scoped
from mongo_bootstrap.models.bootstrap import (
    AppUserSpec,
    BootstrapReport,
    ExistingUserPolicy,
    UserAction,
)

logger = logging.getLogger("mongo_bootstrap")

# Server error codes
AUTHENTICATION_FAILED = 18
MECHANISM_UNAVAILABLE = 334
AUTH_REJECTED_CODES = (AUTHENTICATION_FAILED, MECHANISM_UNAVAILABLE)
NAMESPACE_EXISTS = 48
USER_ALREADY_EXISTS = 51003


def _translate_failure(e: Exception, who: str) -> Optional[Exception]:
    """Map a driver error raised while authenticating to a bootstrap error."""
    if isinstance(e, OperationFailure) and e.code in AUTH_REJECTED_CODES:
        return AuthenticationError(f"Authentication failed for {who}")
    if isinstance(e, (ServerSelectionTimeoutError, ConnectionFailure)):
        return DatabaseUnavailableError(f"MongoDB unreachable while authenticating {who}: {e}")
    return None


class BootstrapService:
    """Idempotent initialization of the target database and its user."""

    def __init__(self, settings: Settings):
        """Initialize with validated settings."""
        self.settings = settings
        self.db_name = settings.mongo_initdb_database
        self.collection_name = settings.mongo_initdb_collection
        self.policy = ExistingUserPolicy(settings.mongo_existing_user_policy)
        self.app_user = AppUserSpec.for_database(
            settings.mongo_non_root_username,
            settings.mongodb_user_password,
            self.db_name,
        )
        self.client: Optional[AsyncIOMotorClient] = None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        return self.client[self.db_name]

    async def authenticate_admin(self) -> None:
        """
        Open the administrative session.

        Raises:
            AuthenticationError: If the root credentials are rejected
            DatabaseUnavailableError: If the server cannot be reached
        """
        who = f"'{self.settings.mongo_initdb_root_username}' on '{ADMIN_DB_NAME}'"
        self.client = admin_client(self.settings)
        try:
            await self.client[ADMIN_DB_NAME].command("ping")
        except (OperationFailure, ConnectionFailure) as e:
            translated = _translate_failure(e, who)
            if translated is None:
                raise
            raise translated from e
        logger.info(f"Authenticated as {who}")

    async def ensure_collection(self) -> bool:
        """
        Create the target collection unless it already exists.

        Returns:
            True if this call created it
        """
        existing = await self.db.list_collection_names(filter={"name": self.collection_name})
        if self.collection_name in existing:
            logger.info(f"Collection '{self.db_name}.{self.collection_name}' already exists")
            return False

        try:
            await self.db.create_collection(self.collection_name)
        except CollectionInvalid:
            logger.info(f"Collection '{self.db_name}.{self.collection_name}' created concurrently")
            return False
        except OperationFailure as e:
            if e.code != NAMESPACE_EXISTS:
                raise
            logger.info(f"Collection '{self.db_name}.{self.collection_name}' created concurrently")
            return False

        logger.info(f"Created collection '{self.db_name}.{self.collection_name}'")
        return True

    async def get_app_user(self) -> Optional[dict]:
        """Return the usersInfo document of the application user, if defined."""
        result = await self.db.command(
            "usersInfo", {"user": self.app_user.username, "db": self.db_name}
        )
        users = result.get("users", [])
        return users[0] if users else None

    async def ensure_app_user(self) -> UserAction:
        """
        Create the application user, or apply the existing-user policy.

        Raises:
            RoleScopeError: If the role set reaches outside the target db
            UserConflictError: If the user exists and the policy is 'fail'
        """
        roles = self.app_user.role_documents()
        ensure_roles_scoped(roles, self.db_name)

        existing = await self.get_app_user()
        if existing is None:
            try:
                await self.db.command(
                    "createUser", self.app_user.username, **self.app_user.command_kwargs()
                )
            except OperationFailure as e:
                if e.code != USER_ALREADY_EXISTS:
                    raise
                existing = await self.get_app_user() or {}
            else:
                logger.info(
                    f"Created user '{self.app_user.username}' on '{self.db_name}' "
                    f"with roles {roles}"
                )
                return UserAction.CREATED

        return await self._apply_existing_user_policy(existing)

    async def _apply_existing_user_policy(self, existing: dict) -> UserAction:
        username = self.app_user.username

        if self.policy == ExistingUserPolicy.FAIL:
            raise UserConflictError(
                f"User '{username}' already exists on '{self.db_name}' "
                f"and the existing-user policy is '{self.policy.value}'"
            )

        if self.policy == ExistingUserPolicy.UPDATE:
            await self.db.command("updateUser", username, **self.app_user.command_kwargs())
            logger.info(f"Updated user '{username}' on '{self.db_name}'")
            return UserAction.UPDATED

        if not self.app_user.roles_match(existing.get("roles", [])):
            logger.warning(
                f"User '{username}' exists with roles {existing.get('roles', [])}, "
                f"expected {self.app_user.role_documents()}; leaving unchanged"
            )
        else:
            logger.info(f"User '{username}' already exists on '{self.db_name}'; skipping")
        return UserAction.SKIPPED

    async def verify_app_user(self) -> None:
        """
        Authenticate as the application user and check its role scope.

        Raises:
            AuthenticationError: If the application credentials are rejected
            RoleScopeError: If the user holds a role outside the target db
        """
        username = self.app_user.username
        who = f"'{username}' on '{self.db_name}'"
        client = app_user_client(self.settings)
        try:
            try:
                status = await client[self.db_name].command("connectionStatus")
            except (OperationFailure, ConnectionFailure) as e:
                translated = _translate_failure(e, who)
                if translated is None:
                    raise
                raise translated from e
        finally:
            close_client(client)

        auth_info = status.get("authInfo", {})
        users = auth_info.get("authenticatedUsers", [])
        if not any(u.get("user") == username and u.get("db") == self.db_name for u in users):
            raise AuthenticationError(f"Server did not report {who} as authenticated")

        ensure_roles_scoped(auth_info.get("authenticatedUserRoles", []), self.db_name)
        logger.info(f"Verified login as {who}")

    async def run(self) -> BootstrapReport:
        """
        Run all steps in order. Each step depends on the previous one.
        """
        start_time = datetime.now(timezone.utc)
        try:
            await self.authenticate_admin()
            created = await self.ensure_collection()
            action = await self.ensure_app_user()
        finally:
            await self.close()

        await self.verify_app_user()

        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        return BootstrapReport(
            database=self.db_name,
            collection=self.collection_name,
            collection_created=created,
            username=self.app_user.username,
            user_action=action,
            verified=True,
            elapsed_seconds=round(elapsed, 2),
        )

    async def close(self) -> None:
        """Release the administrative session."""
        close_client(self.client)
        self.client = None
