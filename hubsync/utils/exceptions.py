"""
Custom exception hierarchy for HubSync.

Every error the engine raises derives from HubSyncError, so a full pass can
catch one type per item, record it and move on to the next item.
"""


class HubSyncError(Exception):
    """
    Base exception for all HubSync errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize HubSync error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(HubSyncError):
    """
    Base exception for storage operations.
    Used for errors raised by the vault or the settings store.
    """

    pass


class VaultError(StoreError):
    """
    Vault operation errors.
    Raised when a read, write, rename or delete against the vault fails.
    """

    pass


class SettingsStoreError(StoreError):
    """
    Settings store errors.
    Raised when hub settings cannot be loaded or persisted.
    """

    pass


class NotFoundError(HubSyncError):
    """
    Resource not found errors.
    Raised when a requested document or folder doesn't exist in the vault.
    """

    pass


class ValidationError(HubSyncError):
    """
    Validation errors.
    Raised when a settings change names an unknown key or an invalid value.
    """

    pass


class ConfigurationError(HubSyncError):
    """
    Configuration errors.
    Raised when a config file is broken or holds invalid values.
    """

    pass
