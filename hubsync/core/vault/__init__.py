"""
Vault storage backends.

- VaultStore: abstract interface the engine depends on
- InMemoryVault: dict-backed tree with a change feed (tests, `memory` backend)
- LocalVault: directory on disk with a watchdog change feed
"""

from hubsync.core.vault.base import VaultStore
from hubsync.core.vault.local_vault import LocalVault
from hubsync.core.vault.memory_vault import InMemoryVault

__all__ = [
    "VaultStore",
    "InMemoryVault",
    "LocalVault",
]
