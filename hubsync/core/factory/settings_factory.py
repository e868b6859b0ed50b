"""
Factory for creating hub settings stores.
"""

from pathlib import Path

from hubsync.config import Config
from hubsync.core.settings_store.base import SettingsStore
from hubsync.core.settings_store.memory_store import InMemorySettingsStore
from hubsync.core.settings_store.yaml_store import YamlSettingsStore


class SettingsStoreFactory:
    """Factory for creating settings stores matching the vault backend."""

    @staticmethod
    def create(config: Config) -> SettingsStore:
        """
        Create settings store from configuration.

        The local backend keeps its settings file inside the vault; the
        memory backend keeps them in process.

        Args:
            config: Main configuration object

        Returns:
            Settings store instance

        Raises:
            ValueError: If backend is not supported
        """
        if config.vault.backend == "local":
            path = Path(config.vault.root) / config.vault.settings_file
            return YamlSettingsStore(path=path, defaults=config.hub)
        elif config.vault.backend == "memory":
            return InMemorySettingsStore(initial=config.hub)
        else:
            raise ValueError(f"Unsupported vault backend: {config.vault.backend}")
