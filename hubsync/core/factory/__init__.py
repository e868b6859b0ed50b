"""
Factory modules for creating HubSync components.
"""

from hubsync.core.factory.settings_factory import SettingsStoreFactory
from hubsync.core.factory.vault_factory import VaultFactory

__all__ = [
    "VaultFactory",
    "SettingsStoreFactory",
]
