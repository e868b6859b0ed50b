"""
Hub Registry - which hub belongs to which folder.

Nothing here is cached. Every answer is derived from the snapshot passed in,
so callers take a fresh snapshot whenever the tree may have changed.

Numbering rule:
- A folder whose name is unique among non-excluded folders gets `<name><suffix>`
- Folders sharing a name get `<name><suffix><n>`, n being the 1-based rank by
  creation time (ties broken by path; a missing creation time counts as 0)
"""

from collections import Counter

from hubsync.config import HubSettings
from hubsync.models.sync import DirectoryEntry, DirectoryListing
from hubsync.models.vault import MARKDOWN_EXTENSION, Folder, NoteFile, VaultSnapshot, join_path
from hubsync.services.path_rules import (
    HIDDEN_PREFIX,
    PathSkipOptions,
    hub_name_for,
    is_hub_name_for,
    numbered_hub_name_for,
    should_skip_path,
)


def hub_file_path(folder_path: str, hub_name: str) -> str:
    """Path of a hub document inside its folder."""
    return join_path(folder_path, f"{hub_name}.{MARKDOWN_EXTENSION}")


class HubRegistry:
    """Resolves hub names and locations from vault snapshots."""

    def __init__(self, settings: HubSettings):
        """
        Initialize registry.

        Args:
            settings: Live settings object (read on every call)
        """
        self.settings = settings

    @property
    def suffix(self) -> str:
        return self.settings.suffix

    @property
    def skip_options(self) -> PathSkipOptions:
        return PathSkipOptions.from_settings(self.settings)

    def is_excluded(self, path: str) -> bool:
        return should_skip_path(path, self.skip_options)

    def eligible_folders(self, snapshot: VaultSnapshot) -> list[Folder]:
        """Non-root, non-excluded folders, parents before children."""
        options = self.skip_options
        return [f for f in snapshot.all_folders() if not should_skip_path(f.path, options)]

    def name_counts(self, snapshot: VaultSnapshot) -> Counter:
        """How many eligible folders carry each name."""
        return Counter(f.name for f in self.eligible_folders(snapshot))

    def same_name_group(self, snapshot: VaultSnapshot, folder_name: str) -> list[Folder]:
        """All eligible folders named folder_name, oldest first."""
        group = [f for f in self.eligible_folders(snapshot) if f.name == folder_name]
        return sorted(group, key=lambda f: (f.ctime or 0.0, f.path))

    def expected_hub_name(self, snapshot: VaultSnapshot, folder: Folder) -> str:
        """The name this folder's hub should carry right now."""
        group = self.same_name_group(snapshot, folder.name)
        if len(group) <= 1:
            return hub_name_for(folder.name, self.suffix)
        for index, member in enumerate(group):
            if member.path == folder.path:
                return numbered_hub_name_for(folder.name, index + 1, self.suffix)
        # Folder isn't part of its own group (excluded); fall back to the plain name
        return hub_name_for(folder.name, self.suffix)

    def expected_hub_path(self, snapshot: VaultSnapshot, folder: Folder) -> str:
        return hub_file_path(folder.path, self.expected_hub_name(snapshot, folder))

    def find_hub(
        self,
        snapshot: VaultSnapshot,
        folder: Folder,
        folder_name: str | None = None,
        suffix: str | None = None,
        prefer: str | None = None,
    ) -> NoteFile | None:
        """
        Find the existing hub document inside a folder.

        Args:
            snapshot: Vault snapshot
            folder: Folder to search
            folder_name: Name the hub is derived from; pass the old name to
                find a hub that wasn't renamed along with its folder
            suffix: Suffix to match (default: current suffix)
            prefer: Basename to return when several candidates exist

        Returns:
            Hub file or None if the folder has none
        """
        name = folder_name if folder_name is not None else folder.name
        suffix = suffix if suffix is not None else self.suffix
        candidates = [
            f
            for f in snapshot.child_files(folder.path)
            if f.is_markdown and is_hub_name_for(f.basename, name, suffix)
        ]
        if not candidates:
            return None
        if prefer is not None:
            for candidate in candidates:
                if candidate.basename == prefer:
                    return candidate
        return candidates[0]

    def hubs_with_suffix(self, snapshot: VaultSnapshot, suffix: str) -> list[NoteFile]:
        """Every hub document (plain or numbered) using the given suffix."""
        hubs = []
        for folder in self.eligible_folders(snapshot):
            for f in snapshot.child_files(folder.path):
                if f.is_markdown and is_hub_name_for(f.basename, folder.name, suffix):
                    hubs.append(f)
        return hubs

    def is_hub_document(self, snapshot: VaultSnapshot, note: NoteFile) -> bool:
        """True if the note carries a hub name for its own folder."""
        folder = snapshot.folder(note.parent_path)
        if folder is None or folder.is_root:
            return False
        return note.is_markdown and is_hub_name_for(note.basename, folder.name, self.suffix)

    def hub_paths(self, snapshot: VaultSnapshot) -> set[str]:
        """Expected hub path of every eligible folder (for hiding in file browsers)."""
        return {self.expected_hub_path(snapshot, f) for f in self.eligible_folders(snapshot)}

    def directory_listing(
        self,
        snapshot: VaultSnapshot,
        folder_path: str,
        source_path: str | None = None,
    ) -> DirectoryListing:
        """
        Entries shown by a folder's directory block.

        Sub-folders link to their hub. Notes exclude the folder's own hub,
        the document rendering the block and dot-files.
        """
        listing = DirectoryListing(folder_path=folder_path)
        folder = snapshot.folder(folder_path)
        if folder is None:
            return listing

        options = self.skip_options
        hub_name = None if folder.is_root else self.expected_hub_name(snapshot, folder)

        for child in snapshot.child_folders(folder.path):
            if child.name.startswith(HIDDEN_PREFIX) or should_skip_path(child.path, options):
                continue
            listing.folders.append(
                DirectoryEntry(
                    name=child.name,
                    path=self.expected_hub_path(snapshot, child),
                    is_folder=True,
                )
            )

        for note in snapshot.child_files(folder.path):
            if not note.is_markdown or note.path == source_path:
                continue
            if note.basename == hub_name or note.basename.startswith(HIDDEN_PREFIX):
                continue
            if should_skip_path(note.path, options):
                continue
            listing.notes.append(DirectoryEntry(name=note.basename, path=note.path, mtime=note.mtime))

        listing.folders.sort(key=lambda e: e.name.lower())
        listing.notes.sort(key=lambda e: e.name.lower())
        return listing
