"""
Factory for creating vault backends.
"""

from hubsync.config import Config
from hubsync.core.vault.base import VaultStore
from hubsync.core.vault.local_vault import LocalVault
from hubsync.core.vault.memory_vault import InMemoryVault


class VaultFactory:
    """Factory for creating vault backends from configuration."""

    @staticmethod
    def create(config: Config) -> VaultStore:
        """
        Create vault from configuration.

        Args:
            config: Main configuration object

        Returns:
            Vault instance

        Raises:
            ValueError: If backend is not supported
        """
        if config.vault.backend == "local":
            return LocalVault(root=config.vault.root)
        elif config.vault.backend == "memory":
            return InMemoryVault()
        else:
            raise ValueError(f"Unsupported vault backend: {config.vault.backend}")
