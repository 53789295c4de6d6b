"""
Services module - bootstrap logic.
"""
from mongo_bootstrap.services.bootstrap_service import BootstrapService

__all__ = ["BootstrapService"]
