"""
Pydantic models for bootstrap state.
"""
from mongo_bootstrap.models.bootstrap import (
    ExistingUserPolicy,
    UserAction,
    RoleGrant,
    AppUserSpec,
    BootstrapReport,
)

__all__ = [
    "ExistingUserPolicy",
    "UserAction",
    "RoleGrant",
    "AppUserSpec",
    "BootstrapReport",
]
