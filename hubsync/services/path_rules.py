"""
Path and hub-name rules. No I/O.

Answers "should this path be skipped?", "is this the root?" and "what is the
hub name for this folder name?".
"""

import re

from pydantic import BaseModel, Field

from hubsync.config import DEFAULT_SUFFIX, HubSettings

HIDDEN_PREFIX = "."


class PathSkipOptions(BaseModel):
    """Exclusion rules applied to every path segment."""

    excluded_names: list[str] = Field(default_factory=list)
    exclude_hidden: bool = True

    @classmethod
    def from_settings(cls, settings: HubSettings) -> "PathSkipOptions":
        return cls(excluded_names=list(settings.excluded_names), exclude_hidden=settings.exclude_hidden)


def normalize_path(path: str) -> str:
    return path.strip().strip("/")


def is_root_folder(path: str) -> bool:
    """True when the path is the vault root (empty or slash-only)."""
    return normalize_path(path) == ""


def should_skip_path(path: str, options: PathSkipOptions) -> bool:
    """
    True if the engine must ignore this path.

    The root is skipped, as is any path with a segment that is an excluded
    name or (when enabled) starts with the hidden-name marker.
    """
    normalized = normalize_path(path)
    if normalized == "":
        return True
    for segment in normalized.split("/"):
        if not segment:
            continue
        if segment in options.excluded_names:
            return True
        if options.exclude_hidden and segment.startswith(HIDDEN_PREFIX):
            return True
    return False


def hub_name_for(folder_name: str, suffix: str) -> str:
    """Undecorated hub name: 'Projects' + '_' -> 'Projects_'."""
    return folder_name + (suffix or DEFAULT_SUFFIX)


def numbered_hub_name_for(folder_name: str, ordinal: int, suffix: str) -> str:
    """Hub name for a shared folder name: 'Projects' + '_' + 2 -> 'Projects_2'."""
    return f"{folder_name}{suffix or DEFAULT_SUFFIX}{ordinal}"


def numbered_hub_pattern(folder_name: str, suffix: str) -> re.Pattern[str]:
    """Pattern matching any numbered hub name for this folder name (full match)."""
    return re.compile(rf"^{re.escape(folder_name)}{re.escape(suffix or DEFAULT_SUFFIX)}\d+$")


def is_hub_name_for(basename: str, folder_name: str, suffix: str) -> bool:
    """True if basename is the undecorated or any numbered hub name for folder_name."""
    if basename == hub_name_for(folder_name, suffix):
        return True
    return numbered_hub_pattern(folder_name, suffix).match(basename) is not None


def hub_suffix_pattern(suffix: str) -> re.Pattern[str]:
    """Pattern matching any link target that looks like a hub name for this suffix."""
    return re.compile(rf"^.*{re.escape(suffix or DEFAULT_SUFFIX)}\d*$")
