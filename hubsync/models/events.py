"""
Change notifications published by a vault.
"""

from enum import Enum

from pydantic import BaseModel, Field


class VaultEventType(str, Enum):
    """Kinds of structural change the engine reacts to."""

    CREATE = "create"
    RENAME = "rename"
    DELETE = "delete"


class VaultEvent(BaseModel):
    """
    One change notification.

    Renames and moves carry both paths. Deletes carry is_folder because the
    path can no longer be inspected once the event arrives.
    """

    type: VaultEventType
    path: str = Field(..., description="Current path (the removed path for deletes)")
    old_path: str | None = Field(default=None, description="Previous path for renames")
    is_folder: bool = Field(default=False, description="Whether the path is a folder")

    @property
    def paths(self) -> list[str]:
        """Every path this event touches."""
        return [self.path] if self.old_path is None else [self.path, self.old_path]
