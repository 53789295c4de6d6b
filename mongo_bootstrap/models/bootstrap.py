"""
Models for the application user and the bootstrap outcome.
"""
from enum import Enum

from pydantic import BaseModel, Field, SecretStr

from mongo_bootstrap.database.target import APP_USER_MECHANISMS, app_user_roles


class ExistingUserPolicy(str, Enum):
    """What to do when the application user is already defined."""
    FAIL = "fail"
    SKIP = "skip"
    UPDATE = "update"


class UserAction(str, Enum):
    """What the bootstrap did to the application user."""
    CREATED = "created"
    SKIPPED = "skipped"
    UPDATED = "updated"


class RoleGrant(BaseModel):
    """A role on a specific database."""
    role: str
    db: str


class AppUserSpec(BaseModel):
    """
    Desired state of the application user.
    """
    username: str = Field(..., min_length=1)
    password: SecretStr
    database: str = Field(..., min_length=1)
    mechanisms: list[str] = Field(default_factory=lambda: list(APP_USER_MECHANISMS))
    roles: list[RoleGrant] = Field(default_factory=list)

    @classmethod
    def for_database(cls, username: str, password: SecretStr, database: str) -> "AppUserSpec":
        """Desired user with the default role set for database."""
        return cls(
            username=username,
            password=password,
            database=database,
            roles=[RoleGrant(**role) for role in app_user_roles(database)],
        )

    def role_documents(self) -> list[dict[str, str]]:
        return [role.model_dump() for role in self.roles]

    def command_kwargs(self) -> dict:
        """Keyword arguments shared by createUser and updateUser."""
        return {
            "pwd": self.password.get_secret_value(),
            "mechanisms": list(self.mechanisms),
            "roles": self.role_documents(),
        }

    def roles_match(self, roles: list[dict]) -> bool:
        """Compare against the roles reported by usersInfo."""
        existing = {(r.get("role"), r.get("db")) for r in roles if isinstance(r, dict)}
        wanted = {(r.role, r.db) for r in self.roles}
        return existing == wanted


class BootstrapReport(BaseModel):
    """Summary of one bootstrap run."""
    database: str
    collection: str
    collection_created: bool
    username: str
    user_action: UserAction
    verified: bool = False
    elapsed_seconds: float = 0.0

    class Config:
        use_enum_values = True
