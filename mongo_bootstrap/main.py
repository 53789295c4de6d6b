#!/usr/bin/env python3
"""
MongoDB Bootstrap

Runs once at container startup:
- Authenticates as the root user against admin
- Creates the target collection if missing
- Creates (or reconciles) the database-scoped application user
- Logs in as that user to prove the credential works

Safe to re-run: existing collections are left alone and an existing user
is handled according to MONGO_EXISTING_USER_POLICY.

Usage:
    python -m mongo_bootstrap

Environment Variables:
    MONGO_URI: MongoDB connection string (default: mongodb://localhost:27017)
    MONGO_INITDB_ROOT_USERNAME: Administrative username
    MONGO_INITDB_DATABASE: Target database
    MONGO_INITDB_COLLECTION: Collection to create in the target database
    MONGO_NON_ROOT_USERNAME: Application username
    MONGO_EXISTING_USER_POLICY: fail | skip | update (default: skip)
    MONGO_SECRETS_DIR: Directory with the secret files (default: /run/secrets)
    LOG_LEVEL: Logging level (default: INFO)

Secret files:
    mongodb_root_password: Administrative password
    mongodb_user_password: Application user password
"""
import asyncio
import logging
import sys

from pymongo.errors import PyMongoError

from mongo_bootstrap.config import get_settings
from mongo_bootstrap.core.errors import BootstrapError
from mongo_bootstrap.services.bootstrap_service import BootstrapService


# ==================== Logging Setup ====================

logger = logging.getLogger("mongo_bootstrap")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


# ==================== Main Entry Point ====================

async def main() -> int:
    """Load settings, bootstrap, and return the process exit code."""
    setup_logging()
    logger.info("=" * 60)
    logger.info("MongoDB Bootstrap")
    logger.info("=" * 60)

    try:
        settings = get_settings()
        setup_logging(settings.log_level)
        logger.info(
            f"Target: {settings.mongo_initdb_database}.{settings.mongo_initdb_collection} "
            f"user '{settings.mongo_non_root_username}' "
            f"(existing-user policy: {settings.mongo_existing_user_policy.value})"
        )

        service = BootstrapService(settings)
        report = await service.run()
    except BootstrapError as e:
        logger.error(f"Bootstrap failed: {e}")
        return e.exit_code
    except PyMongoError as e:
        logger.error(f"Bootstrap failed with database error: {e}")
        return 1

    logger.info(
        f"Bootstrap complete: collection "
        f"{'created' if report.collection_created else 'existed'}, "
        f"user {report.user_action}, verified in {report.elapsed_seconds}s"
    )
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
