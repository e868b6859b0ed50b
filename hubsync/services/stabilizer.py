"""
Hub stabilization waiter.

Dependent operations (parent links, note links) need a folder's hub to exist
under its final, possibly numbered, name. Numbering can move underneath them
while a sibling is being created or renamed, so they poll for a bounded time
instead of capturing a stale name.
"""

import asyncio

from hubsync.core.vault.base import VaultStore
from hubsync.models.vault import NoteFile, VaultSnapshot
from hubsync.services.hub_registry import HubRegistry
from hubsync.utils.logger import get_logger

logger = get_logger(__name__)


class HubStabilizer:
    """Polls until a folder's hub exists with its expected name."""

    def __init__(
        self,
        vault: VaultStore,
        registry: HubRegistry,
        attempts: int = 60,
        interval: float = 0.1,
    ):
        """
        Initialize stabilizer.

        Args:
            vault: Vault to poll
            registry: Hub name resolver
            attempts: Maximum number of polls
            interval: Seconds between polls
        """
        self.vault = vault
        self.registry = registry
        self.attempts = attempts
        self.interval = interval

    async def wait_for_hub(
        self, folder_path: str, snapshot: VaultSnapshot | None = None
    ) -> NoteFile | None:
        """
        Wait until the folder's hub exists and carries its expected name.

        Args:
            folder_path: Folder whose hub is needed
            snapshot: Vault state to check first; later polls take a fresh one

        Returns:
            The stable hub, or None if the folder is gone or the attempts ran
            out (callers carry on without the dependency)
        """
        for attempt in range(self.attempts):
            if snapshot is None or attempt > 0:
                snapshot = await self.vault.snapshot()
            folder = snapshot.folder(folder_path)
            if folder is None or folder.is_root:
                return None
            expected = self.registry.expected_hub_name(snapshot, folder)
            hub = self.registry.find_hub(snapshot, folder, prefer=expected)
            if hub is not None and hub.basename == expected:
                return hub
            if attempt < self.attempts - 1:
                await asyncio.sleep(self.interval)

        logger.warning(
            f"Hub for {folder_path!r} did not stabilize after {self.attempts} attempts"
        )
        return None
