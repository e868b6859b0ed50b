"""
Leaf Link Upserter - the hub link block at the top of every note.

A note inside a folder starts with exactly one link to its folder's hub:

    [optional blank line]
    [[Folder_]]              (optionally wrapped in a hide span)
    <blank line>
    [--- and a blank line]   (optional separator)
    ...rest of the note, untouched...

Notes at the vault root and in excluded folders carry no block. Hub
documents never get a block; their parent link lives under the heading.
"""

import re

from hubsync.config import HubSettings
from hubsync.core.vault.base import VaultStore
from hubsync.models.sync import PassReport
from hubsync.models.vault import ROOT_PATH, VaultSnapshot, parent_of
from hubsync.services.hub_builder import DEFAULT_HEADING, wiki_link
from hubsync.services.hub_registry import HubRegistry
from hubsync.services.path_rules import hub_suffix_pattern, is_hub_name_for
from hubsync.services.stabilizer import HubStabilizer
from hubsync.services.write_lock import WriteLock
from hubsync.utils.exceptions import HubSyncError, NotFoundError
from hubsync.utils.logger import get_logger

logger = get_logger(__name__)

HIDE_CLASS = "hubsync-hide"
SEPARATOR = "---"

_WIKI_LINK = re.compile(r"^\[\[([^\]#|]+)")
_SPAN_WIKI_LINK = re.compile(r"<span[^>]*>\[\[([^\]#|]+)")
_SEPARATOR_BLOCK = re.compile(r"^[ \t]*---[ \t]*(?:\n|$)(?:[ \t]*\n)?")
_ANY_HEADING = re.compile(r"^##\s+")
_HIDE_SPAN = re.compile(rf'<span class="{re.escape(HIDE_CLASS)}">([\s\S]*?)</span>')


# ═══════════════════════════════════════════════════════════
# TEXT HELPERS (no I/O)
# ═══════════════════════════════════════════════════════════


def extract_link_target(line: str) -> str | None:
    """Target of a `[[target]]` or `<span ...>[[target]]</span>` line, else None."""
    trimmed = line.strip()
    match = _WIKI_LINK.match(trimmed) or _SPAN_WIKI_LINK.search(trimmed)
    return match.group(1) if match else None


def is_hub_link_line(line: str, settings: HubSettings, folder_name: str | None = None) -> bool:
    """
    True if the line is a link to a hub.

    Without a folder name any hub-looking target matches, for the current
    suffix and, while a migration is pending, the previous one as well.
    """
    target = extract_link_target(line)
    if target is None:
        return False
    if folder_name is not None:
        return is_hub_name_for(target, folder_name, settings.suffix)
    if hub_suffix_pattern(settings.suffix).match(target):
        return True
    previous = settings.previous_suffix or settings.suffix
    return previous != settings.suffix and hub_suffix_pattern(previous).match(target) is not None


def leading_link_block_end(lines: list[str], settings: HubSettings) -> tuple[int, bool]:
    """
    Index just past the leading blank and hub-link lines.

    Returns:
        (index, whether at least one hub link line was found)
    """
    index = 0
    found = False
    while index < len(lines):
        line = lines[index]
        if line.strip() == "":
            index += 1
            continue
        if is_hub_link_line(line, settings):
            found = True
            index += 1
            continue
        break
    return index, found


def select_all_exclude_line_count(lines: list[str], settings: HubSettings) -> int:
    """
    Number of leading lines a select-all should skip.

    Structure: at most one blank, exactly one hub link, one blank, then
    optionally the separator and one blank. 0 when no link leads the note.
    """
    i = 0
    if i < len(lines) and lines[i].strip() == "":
        i += 1
    if i >= len(lines) or not is_hub_link_line(lines[i], settings):
        return 0
    i += 1
    if i < len(lines) and lines[i].strip() == "":
        i += 1
    if i < len(lines) and lines[i].strip() == SEPARATOR:
        i += 1
        if i < len(lines) and lines[i].strip() == "":
            i += 1
    return i


def update_parent_link_under_heading(
    content: str, parent_link: str | None, heading: str = DEFAULT_HEADING
) -> str:
    """Replace, insert or remove the link line right below a hub's heading."""
    lines = content.split("\n")
    heading = heading.strip()
    heading_index = next((i for i, line in enumerate(lines) if line.strip() == heading), -1)
    if heading_index == -1:
        heading_index = next(
            (i for i, line in enumerate(lines) if _ANY_HEADING.match(line.strip())), -1
        )
    if heading_index == -1:
        return content

    j = heading_index + 1
    while j < len(lines) and lines[j].strip() == "":
        j += 1

    if j < len(lines) and extract_link_target(lines[j]) is not None:
        if parent_link is not None:
            lines[j] = parent_link
            return "\n".join(lines)
        # Drop the link and the blank line that followed it
        del lines[j]
        if j < len(lines) and lines[j].strip() == "":
            del lines[j]
        return "\n".join(lines)

    if parent_link is not None:
        lines[j:j] = [parent_link, ""]
        return "\n".join(lines)
    return content


def unwrap_hidden(text: str) -> str:
    """Remove every hide span, keeping what it wrapped."""
    return _HIDE_SPAN.sub(r"\1", text)


def render_link_block(link: str, settings: HubSettings) -> str:
    line = f'<span class="{HIDE_CLASS}">{link}</span>' if settings.auto_hide_links else link
    prefix = "\n" if settings.blank_line_before_link else ""
    separator = f"{SEPARATOR}\n\n" if settings.separator_after_link else ""
    return f"{prefix}{line}\n\n{separator}"


def apply_link_block(content: str, link: str | None, settings: HubSettings) -> str:
    """
    Content with its leading link block replaced by the block for `link`.

    Everything after the old block is kept as is. A None link removes the
    block (and its separator) without adding a new one.
    """
    lines = content.split("\n")
    end, found = leading_link_block_end(lines, settings)
    rest = content
    if found:
        rest = "\n".join(lines[end:])
        if link is None or settings.separator_after_link:
            rest = _SEPARATOR_BLOCK.sub("", rest, count=1)
    if link is None:
        return rest
    return render_link_block(link, settings) + rest


class LinkUpserter:
    """Keeps the link block of every note pointing at the right hub."""

    def __init__(
        self,
        vault: VaultStore,
        registry: HubRegistry,
        write_lock: WriteLock,
        stabilizer: HubStabilizer,
    ):
        self.vault = vault
        self.registry = registry
        self.write_lock = write_lock
        self.stabilizer = stabilizer

    @property
    def settings(self) -> HubSettings:
        return self.registry.settings

    async def correct_link_for(
        self, note_path: str, snapshot: VaultSnapshot | None = None
    ) -> str | None:
        """
        The link a note should carry, or None.

        None for notes at the root, excluded notes (by any segment of their
        own path), or notes whose folder hub never settled. A stable hub
        carries its expected name, so its basename is the link target.
        """
        folder_path = parent_of(note_path) or ROOT_PATH
        if folder_path == ROOT_PATH or self.registry.is_excluded(note_path):
            return None
        hub = await self.stabilizer.wait_for_hub(folder_path, snapshot)
        if hub is None:
            return None
        return wiki_link(hub.basename)

    async def correct_parent_link_for_hub(
        self, hub_path: str, snapshot: VaultSnapshot | None = None
    ) -> str | None:
        """The parent link a hub document should carry under its heading, or None."""
        folder_path = parent_of(hub_path) or ROOT_PATH
        parent_path = parent_of(folder_path) if folder_path != ROOT_PATH else None
        if parent_path in (None, ROOT_PATH) or not self.settings.parent_link:
            return None
        if self.registry.is_excluded(parent_path):
            return None
        hub = await self.stabilizer.wait_for_hub(parent_path, snapshot)
        if hub is not None:
            return wiki_link(hub.basename)
        # Unsettled parent: link to the name its hub is expected to get
        snapshot = await self.vault.snapshot()
        parent = snapshot.folder(parent_path)
        if parent is None:
            return None
        return wiki_link(self.registry.expected_hub_name(snapshot, parent))

    async def _write_if_changed(
        self, path: str, current: str, desired: str, report: PassReport
    ) -> None:
        if desired == current:
            report.unchanged += 1
            return
        self.write_lock.mark(path)
        await self.vault.modify(path, desired)
        report.updated += 1
        logger.debug(f"Updated hub link in {path}")

    async def upsert(self, note_path: str) -> PassReport:
        """
        Make a note's leading link block match its folder's current hub.

        Hub documents instead get their parent link under the heading
        updated. Writes only when the content changes.
        """
        report = PassReport()
        snapshot = await self.vault.snapshot()
        note = snapshot.file(note_path)
        if note is None or not note.is_markdown:
            return report

        if self.registry.is_hub_document(snapshot, note):
            parent_link = await self.correct_parent_link_for_hub(note.path, snapshot)
            content = await self.vault.read(note.path)
            desired = apply_link_block(content, None, self.settings)
            desired = update_parent_link_under_heading(desired, parent_link, self.settings.heading)
        else:
            link = await self.correct_link_for(note.path, snapshot)
            content = await self.vault.read(note.path)
            desired = apply_link_block(content, link, self.settings)

        await self._write_if_changed(note.path, content, desired, report)
        return report

    async def remove(self, note_path: str) -> PassReport:
        """Strip the link block from a note (and the parent link from a hub)."""
        report = PassReport()
        snapshot = await self.vault.snapshot()
        note = snapshot.file(note_path)
        if note is None or not note.is_markdown:
            return report
        content = await self.vault.read(note.path)
        desired = apply_link_block(content, None, self.settings)
        if self.registry.is_hub_document(snapshot, note):
            desired = update_parent_link_under_heading(desired, None, self.settings.heading)
        await self._write_if_changed(note.path, content, desired, report)
        return report

    async def refresh_all(self) -> PassReport:
        """Upsert every note that isn't excluded, root notes included."""
        report = PassReport()
        snapshot = await self.vault.snapshot()
        for note in snapshot.markdown_files():
            if self.registry.is_excluded(note.path):
                continue
            try:
                report.merge(await self.upsert(note.path))
            except NotFoundError:
                logger.debug(f"Note vanished during refresh: {note.path}")
            except HubSyncError as e:
                logger.error(f"Failed to refresh hub link in {note.path}: {e}")
                report.failed += 1
        return report

    async def remove_all(self) -> PassReport:
        """Strip link blocks from every note in the vault."""
        report = PassReport()
        snapshot = await self.vault.snapshot()
        for note in snapshot.markdown_files():
            try:
                report.merge(await self.remove(note.path))
            except NotFoundError:
                logger.debug(f"Note vanished during removal: {note.path}")
            except HubSyncError as e:
                logger.error(f"Failed to remove hub link from {note.path}: {e}")
                report.failed += 1
        return report

    async def unhide_all(self) -> PassReport:
        """Unwrap hide spans in every note."""
        report = PassReport()
        snapshot = await self.vault.snapshot()
        for note in snapshot.markdown_files():
            try:
                content = await self.vault.read(note.path)
                await self._write_if_changed(note.path, content, unwrap_hidden(content), report)
            except HubSyncError as e:
                logger.error(f"Failed to unhide {note.path}: {e}")
                report.failed += 1
        return report
