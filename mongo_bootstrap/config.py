"""
Bootstrap configuration loaded from environment variables and secret files.
"""
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from mongo_bootstrap.core.errors import ConfigurationError
from mongo_bootstrap.database.target import validate_collection_name, validate_database_name
from mongo_bootstrap.models.bootstrap import ExistingUserPolicy

DEFAULT_SECRETS_DIR = "/run/secrets"

# Fields read from mounted secret files rather than the environment
SECRET_FIELDS = ("mongodb_root_password", "mongodb_user_password")

MONGO_URI_SCHEMES = ("mongodb://", "mongodb+srv://")


class Settings(BaseSettings):
    """Bootstrap settings from environment variables and /run/secrets."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        secrets_dir=DEFAULT_SECRETS_DIR,
    )

    # MongoDB server
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_server_selection_timeout_ms: int = Field(default=5000, gt=0)

    # Administrative credential
    mongo_initdb_root_username: str = Field(..., min_length=1)
    mongodb_root_password: SecretStr

    # Target database
    mongo_initdb_database: str
    mongo_initdb_collection: str

    # Application credential
    mongo_non_root_username: str = Field(..., min_length=1)
    mongodb_user_password: SecretStr
    mongo_existing_user_policy: ExistingUserPolicy = ExistingUserPolicy.SKIP

    # Logging
    log_level: str = "INFO"

    @field_validator("mongo_uri")
    @classmethod
    def check_uri_scheme(cls, value: str) -> str:
        if not value.startswith(MONGO_URI_SCHEMES):
            raise ValueError(f"must start with one of {', '.join(MONGO_URI_SCHEMES)}")
        return value

    @field_validator("mongo_initdb_database")
    @classmethod
    def check_database(cls, value: str) -> str:
        return validate_database_name(value)

    @field_validator("mongo_initdb_collection")
    @classmethod
    def check_collection(cls, value: str) -> str:
        return validate_collection_name(value)

    @field_validator("mongodb_root_password", "mongodb_user_password")
    @classmethod
    def check_secret_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("secret must not be empty")
        return value

    @field_validator("mongo_existing_user_policy", mode="before")
    @classmethod
    def normalize_policy(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


def _describe_error(error: dict, secrets_dir: str) -> str:
    """Turn one pydantic error into an operator-facing message."""
    field = str(error["loc"][0]) if error.get("loc") else "?"
    if field in SECRET_FIELDS:
        source = f"secret file {Path(secrets_dir) / field}"
    else:
        source = f"environment variable {field.upper()}"

    if error.get("type") == "missing":
        return f"{source} is not set"
    return f"{source} is invalid: {error.get('msg')}"


def load_settings(secrets_dir: str | None = None, **overrides) -> Settings:
    """
    Load and validate settings.

    Args:
        secrets_dir: Directory holding the secret files
            (defaults to $MONGO_SECRETS_DIR or /run/secrets)
        **overrides: Init values, mostly for tests

    Raises:
        ConfigurationError: Listing every missing or invalid input
    """
    secrets_dir = secrets_dir or os.getenv("MONGO_SECRETS_DIR", DEFAULT_SECRETS_DIR)
    try:
        return Settings(_secrets_dir=secrets_dir, **overrides)
    except ValidationError as e:
        problems = [_describe_error(err, secrets_dir) for err in e.errors()]
        raise ConfigurationError("; ".join(problems)) from e
    except SettingsError as e:
        raise ConfigurationError(f"secrets directory {secrets_dir} is not a directory") from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()
