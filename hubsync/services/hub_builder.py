"""
Hub Content Builder - creates, renames and rewrites hub documents.

One hub per folder. Content is the heading, an optional link to the parent
folder's hub and the directory block marker. Every write goes through the
write lock first and only happens when the content actually differs.
"""

from hubsync.core.vault.base import VaultStore
from hubsync.models.sync import PassReport
from hubsync.models.vault import ROOT_PATH, Folder, parent_of
from hubsync.services.hub_registry import HubRegistry, hub_file_path
from hubsync.services.path_rules import hub_name_for, numbered_hub_name_for
from hubsync.services.stabilizer import HubStabilizer
from hubsync.services.write_lock import WriteLock
from hubsync.utils.exceptions import HubSyncError
from hubsync.utils.logger import get_logger

logger = get_logger(__name__)

DIRECTORY_BLOCK_LANGUAGE = "display_folder_directory"
DEFAULT_HEADING = "## DIRECTORY"


def wiki_link(target: str) -> str:
    return f"[[{target}]]"


class HubContentBuilder:
    """Keeps hub documents present, correctly named and up to date."""

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
    def settings(self):
        return self.registry.settings

    async def build_content(self, folder_path: str) -> str:
        """
        Desired hub content for a folder.

        Waits for the parent's hub to settle before linking to it; if it
        never does, links to the parent's currently expected name anyway.
        """
        lines = [self.settings.heading or DEFAULT_HEADING, ""]

        parent_path = parent_of(folder_path)
        if parent_path not in (None, ROOT_PATH) and self.settings.parent_link:
            hub = await self.stabilizer.wait_for_hub(parent_path)
            if hub is not None:
                lines.extend([wiki_link(hub.basename), ""])
            else:
                snapshot = await self.vault.snapshot()
                parent = snapshot.folder(parent_path)
                if parent is not None:
                    lines.extend([wiki_link(self.registry.expected_hub_name(snapshot, parent)), ""])

        lines.append(f"```{DIRECTORY_BLOCK_LANGUAGE}")
        lines.append("```")
        lines.append("")
        return "\n".join(lines)

    async def ensure_up_to_date(
        self, hub_path: str, folder_path: str, report: PassReport | None = None
    ) -> PassReport:
        """Rewrite a hub only if its content differs from the desired content."""
        report = report if report is not None else PassReport()
        desired = await self.build_content(folder_path)
        current = await self.vault.read(hub_path)
        if current == desired:
            report.unchanged += 1
            return report
        self.write_lock.mark(hub_path)
        await self.vault.modify(hub_path, desired)
        report.updated += 1
        logger.debug(f"Updated hub {hub_path}")
        return report

    async def _create_hub(self, folder_path: str, report: PassReport) -> None:
        content = await self.build_content(folder_path)
        # Numbering may have moved while waiting on the parent
        snapshot = await self.vault.snapshot()
        folder = snapshot.folder(folder_path)
        if folder is None:
            return
        expected = self.registry.expected_hub_name(snapshot, folder)
        existing = self.registry.find_hub(snapshot, folder, prefer=expected)
        if existing is not None:
            await self.ensure_up_to_date(existing.path, folder_path, report)
            return
        path = hub_file_path(folder_path, expected)
        self.write_lock.mark(path)
        await self.vault.create(path, content)
        report.created += 1
        logger.debug(f"Created hub {path}")

    async def rename_hub(
        self, hub_path: str, folder: Folder, new_name: str, report: PassReport | None = None
    ) -> PassReport:
        """Rename a hub within its folder, then refresh its content."""
        report = report if report is not None else PassReport()
        new_path = hub_file_path(folder.path, new_name)
        self.write_lock.mark(hub_path, new_path)
        await self.vault.rename(hub_path, new_path)
        report.renamed += 1
        logger.debug(f"Renamed hub {hub_path} -> {new_path}")
        await self.ensure_up_to_date(new_path, folder.path, report)
        return report

    async def ensure_exists(self, folder_path: str, prior_name: str | None = None) -> PassReport:
        """
        Make sure a folder has a hub with current content.

        Args:
            folder_path: Folder to ensure
            prior_name: Folder's previous name, when the folder was just
                renamed and its hub may still carry the old name

        Returns:
            PassReport for this folder
        """
        report = PassReport()
        snapshot = await self.vault.snapshot()
        folder = snapshot.folder(folder_path)
        if folder is None or folder.is_root:
            return report

        expected = self.registry.expected_hub_name(snapshot, folder)
        hub = self.registry.find_hub(snapshot, folder, prefer=expected)
        if hub is None and prior_name and prior_name != folder.name:
            hub = self.registry.find_hub(snapshot, folder, folder_name=prior_name)
        if hub is not None:
            await self.ensure_up_to_date(hub.path, folder.path, report)
            return report

        await self._create_hub(folder.path, report)
        return report

    async def assign_numbered_hubs(self, folder_name: str) -> PassReport:
        """
        Bring every hub for a folder name in line with the numbering rule.

        With several same-named folders each gets `<name><suffix><n>` by
        creation order (created, renamed or refreshed as needed). With a
        single folder left its hub is demoted to `<name><suffix>`.
        """
        report = PassReport()
        snapshot = await self.vault.snapshot()
        group = self.registry.same_name_group(snapshot, folder_name)
        suffix = self.registry.suffix

        if not group:
            return report

        if len(group) == 1:
            folder = group[0]
            expected = hub_name_for(folder_name, suffix)
            hub = self.registry.find_hub(snapshot, folder, prefer=expected)
            if hub is not None and hub.basename != expected:
                try:
                    await self.rename_hub(hub.path, folder, expected, report)
                except HubSyncError as e:
                    logger.error(f"Failed to demote hub {hub.path}: {e}")
                    report.failed += 1
            return report

        for index, member in enumerate(group):
            expected = numbered_hub_name_for(folder_name, index + 1, suffix)
            try:
                snapshot = await self.vault.snapshot()
                folder = snapshot.folder(member.path)
                if folder is None:
                    continue
                hub = self.registry.find_hub(snapshot, folder, prefer=expected)
                if hub is None:
                    content = await self.build_content(folder.path)
                    path = hub_file_path(folder.path, expected)
                    self.write_lock.mark(path)
                    await self.vault.create(path, content)
                    report.created += 1
                elif hub.basename != expected:
                    await self.rename_hub(hub.path, folder, expected, report)
                else:
                    await self.ensure_up_to_date(hub.path, folder.path, report)
            except HubSyncError as e:
                logger.error(f"Failed to number hub for {member.path}: {e}")
                report.failed += 1

        return report

    async def delete_hubs_with_suffix(self, suffix: str) -> PassReport:
        """Trash every hub (plain or numbered) that uses the given suffix."""
        report = PassReport()
        snapshot = await self.vault.snapshot()
        for hub in self.registry.hubs_with_suffix(snapshot, suffix):
            try:
                self.write_lock.mark(hub.path)
                await self.vault.trash(hub.path)
                report.deleted += 1
            except HubSyncError as e:
                logger.error(f"Failed to remove hub {hub.path}: {e}")
                report.failed += 1
        return report
