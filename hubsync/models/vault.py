"""
Vault tree model: folders, files and an immutable snapshot of both.

Paths are vault-relative POSIX strings without leading or trailing slashes.
The vault root is the folder whose path is the empty string.
"""

from pydantic import BaseModel, Field

ROOT_PATH = ""
MARKDOWN_EXTENSION = "md"


def parent_of(path: str) -> str | None:
    """Parent folder path, or None for the root."""
    path = path.strip("/")
    if path == ROOT_PATH:
        return None
    head, _, _ = path.rpartition("/")
    return head


def name_of(path: str) -> str:
    """Last path segment."""
    return path.strip("/").rpartition("/")[2]


def join_path(folder_path: str, name: str) -> str:
    """Join a folder path and a child name."""
    return f"{folder_path}/{name}" if folder_path else name


class Folder(BaseModel):
    """A container in the vault tree."""

    path: str = Field(..., description="Vault-relative path ('' for the root)")
    ctime: float = Field(default=0.0, description="Creation timestamp (0 when unknown)")

    @property
    def name(self) -> str:
        return name_of(self.path)

    @property
    def parent_path(self) -> str | None:
        return parent_of(self.path)

    @property
    def is_root(self) -> bool:
        return self.path == ROOT_PATH

    @property
    def depth(self) -> int:
        return 0 if self.is_root else self.path.count("/") + 1


class NoteFile(BaseModel):
    """A document in the vault tree."""

    path: str = Field(..., description="Vault-relative path including extension")
    ctime: float = Field(default=0.0, description="Creation timestamp (0 when unknown)")
    mtime: float = Field(default=0.0, description="Last modification timestamp")

    @property
    def name(self) -> str:
        return name_of(self.path)

    @property
    def basename(self) -> str:
        """File name without extension."""
        stem, dot, _ = self.name.rpartition(".")
        return stem if dot and stem else self.name

    @property
    def extension(self) -> str:
        stem, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot and stem else ""

    @property
    def parent_path(self) -> str:
        return parent_of(self.path) or ROOT_PATH

    @property
    def is_markdown(self) -> bool:
        return self.extension == MARKDOWN_EXTENSION


class VaultSnapshot(BaseModel):
    """
    Point-in-time view of the vault tree.

    Snapshots are cheap to take and never updated in place; every resolver
    call works from a fresh one so concurrent renames and deletes are always
    seen.
    """

    folders: dict[str, Folder] = Field(default_factory=dict)
    files: dict[str, NoteFile] = Field(default_factory=dict)

    def folder(self, path: str) -> Folder | None:
        return self.folders.get(path.strip("/"))

    def file(self, path: str) -> NoteFile | None:
        return self.files.get(path.strip("/"))

    def all_folders(self, include_root: bool = False) -> list[Folder]:
        """All folders, parents before children."""
        folders = sorted(self.folders.values(), key=lambda f: (f.depth, f.path))
        if include_root:
            return folders
        return [f for f in folders if not f.is_root]

    def child_folders(self, path: str) -> list[Folder]:
        return sorted(
            (f for f in self.folders.values() if not f.is_root and f.parent_path == path),
            key=lambda f: f.path,
        )

    def child_files(self, path: str) -> list[NoteFile]:
        return sorted(
            (f for f in self.files.values() if f.parent_path == path),
            key=lambda f: f.path,
        )

    def markdown_files(self) -> list[NoteFile]:
        return sorted((f for f in self.files.values() if f.is_markdown), key=lambda f: f.path)

    def markdown_files_under(self, path: str) -> list[NoteFile]:
        """Markdown files in this folder and every descendant folder."""
        if path == ROOT_PATH:
            return self.markdown_files()
        prefix = path + "/"
        return [f for f in self.markdown_files() if f.path.startswith(prefix)]

    def descendant_folders(self, path: str) -> list[Folder]:
        """Folders strictly below this one, parents first."""
        prefix = path + "/" if path else ""
        return [f for f in self.all_folders() if f.path != path and f.path.startswith(prefix)]
