"""
Data models for HubSync.

- Folder, NoteFile, VaultSnapshot: the vault tree as the engine sees it
- VaultEvent, VaultEventType: change notifications
- SyncMode: whether incremental handlers may run
- PassReport, CommandResult: reconciliation outcomes
- DirectoryEntry, DirectoryListing: data behind a hub's directory block
"""

from hubsync.models.events import VaultEvent, VaultEventType
from hubsync.models.sync import (
    CommandResult,
    DirectoryEntry,
    DirectoryListing,
    PassReport,
    SyncMode,
)
from hubsync.models.vault import (
    MARKDOWN_EXTENSION,
    ROOT_PATH,
    Folder,
    NoteFile,
    VaultSnapshot,
    join_path,
    name_of,
    parent_of,
)

__all__ = [
    # Vault tree
    "Folder",
    "NoteFile",
    "VaultSnapshot",
    "ROOT_PATH",
    "MARKDOWN_EXTENSION",
    "join_path",
    "name_of",
    "parent_of",
    # Events
    "VaultEvent",
    "VaultEventType",
    # Engine state and results
    "SyncMode",
    "PassReport",
    "CommandResult",
    "DirectoryEntry",
    "DirectoryListing",
]
