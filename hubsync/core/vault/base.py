"""
Base interface for vault storage.

The engine never touches the file system directly; everything goes through
this interface so the same reconciliation logic runs against a real
directory or an in-memory tree.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from hubsync.models.events import VaultEvent
from hubsync.models.vault import VaultSnapshot


class VaultStore(ABC):
    """Abstract base class for vault implementations."""

    # ═══════════════════════════════════════════════════════════
    # TREE
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def snapshot(self) -> VaultSnapshot:
        """
        Take a fresh snapshot of every folder and file.

        Returns:
            VaultSnapshot including the root folder
        """
        pass

    @abstractmethod
    async def create_folder(self, path: str) -> None:
        """
        Create a folder and any missing parents.

        Args:
            path: Vault-relative folder path
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # DOCUMENTS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def read(self, path: str) -> str:
        """
        Read a document as text.

        Args:
            path: Vault-relative file path

        Returns:
            File content

        Raises:
            NotFoundError: If the file doesn't exist
            VaultError: If the read fails
        """
        pass

    @abstractmethod
    async def create(self, path: str, content: str) -> None:
        """
        Create a new document.

        Args:
            path: Vault-relative file path (parent folder must exist)
            content: Initial content

        Raises:
            VaultError: If the path already exists or the write fails
        """
        pass

    @abstractmethod
    async def modify(self, path: str, content: str) -> None:
        """
        Replace a document's content.

        Args:
            path: Vault-relative file path
            content: New content

        Raises:
            NotFoundError: If the file doesn't exist
            VaultError: If the write fails
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # STRUCTURE
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def rename(self, old_path: str, new_path: str) -> None:
        """
        Rename or move a file or folder.

        Args:
            old_path: Current path
            new_path: Target path (must not exist)

        Raises:
            NotFoundError: If old_path doesn't exist
            VaultError: If new_path exists or the move fails
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """
        Permanently delete a file or folder (recursively).

        Raises:
            NotFoundError: If the path doesn't exist
        """
        pass

    async def trash(self, path: str) -> None:
        """
        Move a file or folder to the vault's trash.

        Backends without a trash delete permanently.
        """
        await self.delete(path)

    async def exists(self, path: str) -> bool:
        """True if a file or folder exists at path."""
        snapshot = await self.snapshot()
        return snapshot.file(path) is not None or snapshot.folder(path) is not None

    # ═══════════════════════════════════════════════════════════
    # CHANGE FEED
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def watch(self) -> AsyncIterator[VaultEvent]:
        """
        Stream change notifications until the consumer stops iterating.

        Returns:
            Async iterator of VaultEvent
        """
        pass

    async def close(self) -> None:
        """Release resources held by the vault."""
        return None
