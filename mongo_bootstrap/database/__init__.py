"""
Database module - MongoDB clients and target database rules.
"""
from mongo_bootstrap.database.connections import (
    create_client,
    admin_client,
    app_user_client,
    close_client,
)
from mongo_bootstrap.database import target

__all__ = [
    "create_client",
    "admin_client",
    "app_user_client",
    "close_client",
    "target",
]
