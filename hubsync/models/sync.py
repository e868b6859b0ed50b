"""
Engine state and result models.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SyncMode(str, Enum):
    """
    Whether incremental handlers may touch the vault.

    Transitions:
    - user toggles live sync: ACTIVE <-> PAUSED
    - remove-hubs / remove-links command: any -> SUPPRESSED_PENDING_REBUILD
    - rebuild-hubs / rebuild-links command: SUPPRESSED_PENDING_REBUILD -> ACTIVE or PAUSED
    """

    ACTIVE = "active"
    PAUSED = "paused"
    SUPPRESSED_PENDING_REBUILD = "suppressed_pending_rebuild"

    @classmethod
    def from_flags(cls, live_sync: bool, suppressed_until_rebuild: bool) -> "SyncMode":
        """Derive the mode from the two persisted flags. Suppression wins."""
        if suppressed_until_rebuild:
            return cls.SUPPRESSED_PENDING_REBUILD
        return cls.ACTIVE if live_sync else cls.PAUSED


class PassReport(BaseModel):
    """Counters for one reconciliation step or pass."""

    created: int = Field(default=0, ge=0)
    renamed: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    deleted: int = Field(default=0, ge=0)
    unchanged: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)

    @property
    def writes(self) -> int:
        """Number of vault mutations performed."""
        return self.created + self.renamed + self.updated + self.deleted

    def merge(self, other: "PassReport") -> "PassReport":
        """Add another report's counters into this one and return self."""
        self.created += other.created
        self.renamed += other.renamed
        self.updated += other.updated
        self.deleted += other.deleted
        self.unchanged += other.unchanged
        self.failed += other.failed
        return self

    def summary(self) -> str:
        return (
            f"{self.created} created, {self.renamed} renamed, {self.updated} updated, "
            f"{self.deleted} deleted, {self.unchanged} unchanged, {self.failed} failed"
        )


class CommandResult(BaseModel):
    """Terminal notification for one top-level command."""

    command: str
    success: bool
    message: str
    report: PassReport = Field(default_factory=PassReport)
    finished_at: datetime = Field(default_factory=datetime.now)


class DirectoryEntry(BaseModel):
    """One card in a folder's directory block."""

    name: str
    path: str = Field(..., description="Path the card opens (the hub for sub-folders)")
    is_folder: bool = False
    mtime: float | None = None


class DirectoryListing(BaseModel):
    """Entries a renderer shows for a folder's directory block."""

    folder_path: str
    folders: list[DirectoryEntry] = Field(default_factory=list)
    notes: list[DirectoryEntry] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.folders and not self.notes
