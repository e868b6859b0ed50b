"""Utility modules for HubSync."""

from hubsync.utils.exceptions import (
    ConfigurationError,
    HubSyncError,
    NotFoundError,
    SettingsStoreError,
    StoreError,
    ValidationError,
    VaultError,
)
from hubsync.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "HubSyncError",
    "StoreError",
    "VaultError",
    "SettingsStoreError",
    "NotFoundError",
    "ValidationError",
    "ConfigurationError",
]
