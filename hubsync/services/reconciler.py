"""
Reconciliation Controller - the event-driven HubSync engine.

Brings together:
- Full passes: rebuild hubs, refresh links (with suffix migration)
- Incremental handlers for folder and note changes
- The change feed, filtered through the write lock
- Commands with a single success/failure result each
- Persisted settings and the sync mode derived from them
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from hubsync.config import Config, HubSettings, TimingConfig
from hubsync.core.factory.settings_factory import SettingsStoreFactory
from hubsync.core.factory.vault_factory import VaultFactory
from hubsync.core.settings_store.base import SettingsStore
from hubsync.core.vault.base import VaultStore
from hubsync.models.events import VaultEvent, VaultEventType
from hubsync.models.sync import CommandResult, DirectoryListing, PassReport, SyncMode
from hubsync.models.vault import MARKDOWN_EXTENSION, name_of
from hubsync.services.hub_builder import HubContentBuilder
from hubsync.services.hub_registry import HubRegistry
from hubsync.services.link_upserter import LinkUpserter, select_all_exclude_line_count
from hubsync.services.stabilizer import HubStabilizer
from hubsync.services.write_lock import WriteLock
from hubsync.utils.exceptions import HubSyncError, ValidationError
from hubsync.utils.logger import get_logger

logger = get_logger(__name__)


class HubSyncEngine:
    """
    Keeps hubs and note links consistent with the vault tree.

    Features:
    - Idempotent full passes (a second run performs no writes)
    - Live sync from the vault's change feed
    - Self-write suppression through a per-engine write lock
    - Suffix migration completed by the link refresh pass
    """

    def __init__(
        self,
        vault: VaultStore,
        settings_store: SettingsStore,
        timing: TimingConfig | None = None,
        defaults: HubSettings | None = None,
        watch: bool = True,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize HubSync engine.

        Args:
            vault: Vault backend
            settings_store: Persistence for hub settings
            timing: Retry and suppression windows
            defaults: Settings used until the store is loaded, and by reset
            watch: Subscribe to the vault's change feed on start
            clock: Time source for the write lock (tests)
        """
        self.vault = vault
        self.settings_store = settings_store
        self.timing = timing or TimingConfig()
        self.defaults = defaults or HubSettings()
        self.watch = watch

        self.registry = HubRegistry(self.defaults.model_copy(deep=True))
        self.write_lock = WriteLock(ttl=self.timing.write_lock_ttl, clock=clock)
        self.stabilizer = HubStabilizer(
            vault=vault,
            registry=self.registry,
            attempts=self.timing.hub_wait_attempts,
            interval=self.timing.hub_wait_interval,
        )
        self.builder = HubContentBuilder(
            vault=vault,
            registry=self.registry,
            write_lock=self.write_lock,
            stabilizer=self.stabilizer,
        )
        self.upserter = LinkUpserter(
            vault=vault,
            registry=self.registry,
            write_lock=self.write_lock,
            stabilizer=self.stabilizer,
        )

        # Pauses handlers while the startup refresh runs; never persisted
        self._startup_running = False
        self._migration_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._watch_task: asyncio.Task | None = None
        self._startup_task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: Config) -> "HubSyncEngine":
        """Build an engine with the configured vault and settings store."""
        return cls(
            vault=VaultFactory.create(config),
            settings_store=SettingsStoreFactory.create(config),
            timing=config.timing,
            defaults=config.hub,
            watch=config.vault.watch,
        )

    # ═══════════════════════════════════════════════════════════
    # SETTINGS & MODE
    # ═══════════════════════════════════════════════════════════

    @property
    def settings(self) -> HubSettings:
        return self.registry.settings

    @property
    def mode(self) -> SyncMode:
        return SyncMode.from_flags(
            self.settings.live_sync, self.settings.suppressed_until_rebuild
        )

    async def initialize(self) -> None:
        """Load persisted settings."""
        self.registry.settings = await self.settings_store.load()
        logger.info(
            f"Loaded hub settings: suffix={self.settings.suffix!r}, mode={self.mode.value}"
        )

    async def _save_settings(self, settings: HubSettings) -> HubSettings:
        await self.settings_store.save(settings)
        self.registry.settings = settings
        return settings

    async def update_settings(self, **changes: Any) -> HubSettings:
        """
        Apply a partial settings update and persist it.

        A new suffix goes through `HubSettings.with_new_suffix`, leaving a
        migration pending until the next link refresh.

        Raises:
            ValidationError: If a key is unknown or a value is invalid
        """
        unknown = sorted(set(changes) - set(HubSettings.model_fields))
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}", context={"fields": unknown})

        suffix = changes.pop("suffix", None)
        data = self.settings.model_dump()
        data.update(changes)
        try:
            settings = HubSettings(**data)
            if suffix is not None:
                settings = settings.with_new_suffix(suffix)
        except PydanticValidationError as e:
            fields = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
            raise ValidationError(f"Invalid settings: {e}", context={"fields": fields}) from e
        await self._save_settings(settings)
        logger.info(f"Settings updated: {sorted(changes) + (['suffix'] if suffix else [])}")
        return settings

    async def set_live_sync(self, enabled: bool) -> HubSettings:
        """Turn incremental handling on or off (ACTIVE <-> PAUSED)."""
        settings = await self._save_settings(
            self.settings.model_copy(update={"live_sync": enabled})
        )
        logger.info(f"Live sync {'enabled' if enabled else 'disabled'}; mode={self.mode.value}")
        return settings

    async def reset_settings(self) -> HubSettings:
        """Restore defaults. A suffix change is recorded as a pending migration."""
        current = self.settings
        settings = self.defaults.model_copy(deep=True)
        if settings.suffix != current.suffix:
            settings = settings.model_copy(update={"previous_suffix": current.suffix})
        await self._save_settings(settings)
        logger.info("Settings reset to defaults")
        return settings

    async def _set_suppressed(self, suppressed: bool) -> None:
        if self.settings.suppressed_until_rebuild != suppressed:
            await self._save_settings(
                self.settings.model_copy(update={"suppressed_until_rebuild": suppressed})
            )

    async def _mark_links_refreshed(self) -> None:
        """Record the current suffix as fully applied, completing any migration."""
        if self.settings.previous_suffix != self.settings.suffix:
            logger.info(
                f"Suffix migration {self.settings.previous_suffix!r} -> "
                f"{self.settings.suffix!r} complete"
            )
            await self._save_settings(
                self.settings.model_copy(update={"previous_suffix": self.settings.suffix})
            )

    # ═══════════════════════════════════════════════════════════
    # FULL PASSES
    # ═══════════════════════════════════════════════════════════

    async def rebuild_hubs_pass(self) -> PassReport:
        """
        Bring every hub in the vault up to date.

        1. Trash hubs still using the previous suffix (migration)
        2. Ensure each eligible folder has a hub, parents first
        3. Re-apply numbering (and demotion) for every folder name
        """
        report = PassReport()
        settings = self.settings

        if settings.migration_pending:
            logger.info(f"Removing hubs with previous suffix {settings.previous_suffix!r}")
            report.merge(await self.builder.delete_hubs_with_suffix(settings.previous_suffix))

        snapshot = await self.vault.snapshot()
        for folder in self.registry.eligible_folders(snapshot):
            try:
                report.merge(await self.builder.ensure_exists(folder.path))
            except HubSyncError as e:
                logger.error(f"Failed to ensure hub for {folder.path}: {e}")
                report.failed += 1

        snapshot = await self.vault.snapshot()
        for name in sorted(self.registry.name_counts(snapshot)):
            report.merge(await self.builder.assign_numbered_hubs(name))

        return report

    async def refresh_links_pass(self) -> PassReport:
        """Upsert the link block of every note outside excluded folders."""
        return await self.upserter.refresh_all()

    async def _refresh_links_for_name(self, folder_name: str) -> PassReport:
        """
        Refresh everything that links to a hub of this folder name.

        That is the notes directly inside each same-named folder and the
        hubs of their sub-folders (parent links).
        """
        report = PassReport()
        snapshot = await self.vault.snapshot()
        for folder in self.registry.same_name_group(snapshot, folder_name):
            for child in snapshot.child_folders(folder.path):
                if self.registry.is_excluded(child.path):
                    continue
                try:
                    report.merge(await self.builder.ensure_exists(child.path))
                except HubSyncError as e:
                    logger.error(f"Failed to refresh hub for {child.path}: {e}")
                    report.failed += 1
            for note in snapshot.child_files(folder.path):
                if not note.is_markdown or self.registry.is_excluded(note.path):
                    continue
                try:
                    report.merge(await self.upserter.upsert(note.path))
                except HubSyncError as e:
                    logger.error(f"Failed to refresh hub link in {note.path}: {e}")
                    report.failed += 1
        return report

    # ═══════════════════════════════════════════════════════════
    # COMMANDS
    # ═══════════════════════════════════════════════════════════

    async def _run_command(
        self, command: str, operation: Callable[[], Awaitable[PassReport]]
    ) -> CommandResult:
        logger.info(f"Running command {command}")
        try:
            report = await operation()
        except Exception as e:
            logger.error(f"Command {command} failed: {e}")
            return CommandResult(command=command, success=False, message=f"{command} failed: {e}")

        message = f"{command} complete: {report.summary()}"
        logger.info(message)
        return CommandResult(command=command, success=True, message=message, report=report)

    async def rebuild_hubs(self) -> CommandResult:
        """Full hub pass; clears suppression."""

        async def operation() -> PassReport:
            report = await self.rebuild_hubs_pass()
            await self._set_suppressed(False)
            return report

        return await self._run_command("rebuild-hubs", operation)

    async def rebuild_links(self) -> CommandResult:
        """
        Full link pass; clears suppression and completes a suffix migration.

        While a migration is pending the hub pass runs first, so notes are
        linked to hubs that already carry the new suffix.
        """

        async def operation() -> PassReport:
            report = PassReport()
            if self.settings.migration_pending:
                report.merge(await self.rebuild_hubs_pass())
            report.merge(await self.refresh_links_pass())
            await self._mark_links_refreshed()
            await self._set_suppressed(False)
            return report

        return await self._run_command("rebuild-links", operation)

    async def remove_all_hubs(self) -> CommandResult:
        """Trash every hub; suppresses sync until the next rebuild."""

        async def operation() -> PassReport:
            await self._set_suppressed(True)
            settings = self.settings
            report = await self.builder.delete_hubs_with_suffix(settings.suffix)
            if settings.migration_pending:
                report.merge(await self.builder.delete_hubs_with_suffix(settings.previous_suffix))
            return report

        return await self._run_command("remove-hubs", operation)

    async def remove_all_links(self) -> CommandResult:
        """Strip every link block; suppresses sync until the next rebuild."""

        async def operation() -> PassReport:
            await self._set_suppressed(True)
            return await self.upserter.remove_all()

        return await self._run_command("remove-links", operation)

    async def unhide_all(self) -> CommandResult:
        return await self._run_command("unhide", self.upserter.unhide_all)

    # ═══════════════════════════════════════════════════════════
    # PRESENTATION
    # ═══════════════════════════════════════════════════════════

    async def hub_paths(self) -> list[str]:
        """Current hub document paths, for hiding in a file browser."""
        snapshot = await self.vault.snapshot()
        return sorted(self.registry.hub_paths(snapshot))

    async def directory_listing(
        self, folder_path: str, source_path: str | None = None
    ) -> DirectoryListing:
        snapshot = await self.vault.snapshot()
        return self.registry.directory_listing(snapshot, folder_path.strip("/"), source_path)

    # ═══════════════════════════════════════════════════════════
    # INCREMENTAL HANDLERS
    # ═══════════════════════════════════════════════════════════

    def handlers_enabled(self) -> bool:
        return self.mode == SyncMode.ACTIVE and not self._startup_running

    async def _migrate_if_pending(self) -> bool:
        """
        Run both full passes if a suffix migration is pending.

        Returns:
            True if a migration ran (the caller's incremental work is moot)
        """
        if not self.settings.migration_pending:
            return False
        async with self._migration_lock:
            if self.settings.migration_pending:
                logger.info("Suffix migration pending; running full passes")
                await self.rebuild_hubs_pass()
                await self.refresh_links_pass()
                await self._mark_links_refreshed()
        return True

    async def on_folder_created(self, path: str) -> PassReport:
        """New folder: its hub, its name group's numbering, and dependent links."""
        report = PassReport()
        if not self.handlers_enabled() or await self._migrate_if_pending():
            return report
        if self.registry.is_excluded(path):
            logger.debug(f"Skipping excluded folder {path}")
            return report

        name = name_of(path)
        report.merge(await self.builder.ensure_exists(path))
        report.merge(await self.builder.assign_numbered_hubs(name))
        report.merge(await self._refresh_links_for_name(name))
        return report

    async def on_folder_renamed(self, path: str, old_path: str) -> PassReport:
        """
        Renamed or moved folder.

        Renames its hub if needed, renumbers the old and new name groups, then
        refreshes every hub and note at or below the folder.
        """
        report = PassReport()
        if not self.handlers_enabled() or await self._migrate_if_pending():
            return report

        old_name = name_of(old_path)
        new_name = name_of(path)

        if not self.registry.is_excluded(path):
            snapshot = await self.vault.snapshot()
            folder = snapshot.folder(path)
            if folder is None:
                return report
            expected = self.registry.expected_hub_name(snapshot, folder)
            hub = self.registry.find_hub(snapshot, folder, prefer=expected)
            if hub is None and old_name != new_name:
                hub = self.registry.find_hub(snapshot, folder, folder_name=old_name)
            try:
                if hub is None:
                    report.merge(await self.builder.ensure_exists(path, prior_name=old_name))
                elif hub.basename != expected:
                    report.merge(await self.builder.rename_hub(hub.path, folder, expected))
            except HubSyncError as e:
                logger.error(f"Failed to move hub for renamed folder {path}: {e}")
                report.failed += 1

        if old_name != new_name:
            report.merge(await self.builder.assign_numbered_hubs(old_name))
            report.merge(await self._refresh_links_for_name(old_name))
        report.merge(await self.builder.assign_numbered_hubs(new_name))

        if self.registry.is_excluded(path):
            return report

        snapshot = await self.vault.snapshot()
        for folder in [snapshot.folder(path), *snapshot.descendant_folders(path)]:
            if folder is None or self.registry.is_excluded(folder.path):
                continue
            try:
                report.merge(await self.builder.ensure_exists(folder.path))
            except HubSyncError as e:
                logger.error(f"Failed to refresh hub for {folder.path}: {e}")
                report.failed += 1

        for note in snapshot.markdown_files_under(path):
            if self.registry.is_excluded(note.path):
                continue
            try:
                report.merge(await self.upserter.upsert(note.path))
            except HubSyncError as e:
                logger.error(f"Failed to refresh hub link in {note.path}: {e}")
                report.failed += 1

        report.merge(await self._refresh_links_for_name(new_name))
        return report

    async def on_folder_deleted(self, path: str) -> PassReport:
        """Deleted folder: renumber the shrunken name group and its links."""
        report = PassReport()
        if not self.handlers_enabled() or await self._migrate_if_pending():
            return report
        if self.registry.is_excluded(path):
            return report

        name = name_of(path)
        report.merge(await self.builder.assign_numbered_hubs(name))
        report.merge(await self._refresh_links_for_name(name))
        return report

    async def on_note_created(self, path: str) -> PassReport:
        """New note: give it the link to its folder's hub."""
        report = PassReport()
        if not self.handlers_enabled() or await self._migrate_if_pending():
            return report
        if not path.endswith(f".{MARKDOWN_EXTENSION}"):
            return report
        if self.registry.is_excluded(path):
            logger.debug(f"Skipping excluded note {path}")
            return report
        return await self.upserter.upsert(path)

    async def on_note_renamed(self, path: str, old_path: str) -> PassReport:
        """Renamed or moved note: its link may now point at another hub."""
        return await self.on_note_created(path)

    async def select_all_exclude_line_count(self, note_path: str) -> int:
        """
        Leading lines of a note that belong to its link block.

        An editor's select-all starts below them so the hub link stays put.

        Raises:
            NotFoundError: If the note doesn't exist
        """
        content = await self.vault.read(note_path)
        return select_all_exclude_line_count(content.split("\n"), self.settings)

    # ═══════════════════════════════════════════════════════════
    # CHANGE FEED
    # ═══════════════════════════════════════════════════════════

    def handle_event(self, event: VaultEvent) -> asyncio.Task | None:
        """
        Schedule the handler for a change notification.

        Returns:
            The handler task, or None if the event was the engine's own write
        """
        for path in event.paths:
            if self.write_lock.is_locked(path):
                logger.debug(f"Ignoring notification for own write: {event.type.value} {path}")
                return None

        task = asyncio.create_task(self._dispatch(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _dispatch(self, event: VaultEvent) -> PassReport | None:
        try:
            if event.is_folder:
                if event.type == VaultEventType.CREATE:
                    return await self.on_folder_created(event.path)
                if event.type == VaultEventType.RENAME:
                    return await self.on_folder_renamed(event.path, event.old_path or event.path)
                if event.type == VaultEventType.DELETE:
                    return await self.on_folder_deleted(event.path)
            else:
                if event.type == VaultEventType.CREATE:
                    return await self.on_note_created(event.path)
                if event.type == VaultEventType.RENAME:
                    return await self.on_note_renamed(event.path, event.old_path or event.path)
            return None
        except Exception as e:
            logger.error(f"Handler for {event.type.value} {event.path} failed: {e}")
            return None

    async def _watch_loop(self) -> None:
        try:
            async for event in self.vault.watch():
                self.handle_event(event)
        except asyncio.CancelledError:
            logger.info("Change feed stopped")
            raise

    async def startup_refresh(self) -> PassReport:
        """
        Wait for the vault to settle, then run both full passes.

        Incremental handlers are paused for the duration. Does nothing unless
        the engine is ACTIVE.
        """
        report = PassReport()
        await asyncio.sleep(self.timing.startup_delay)
        if self.mode != SyncMode.ACTIVE:
            logger.info(f"Skipping startup refresh in mode {self.mode.value}")
            return report

        self._startup_running = True
        try:
            report.merge(await self.rebuild_hubs_pass())
            report.merge(await self.refresh_links_pass())
            await self._mark_links_refreshed()
            logger.info(f"Startup refresh complete: {report.summary()}")
        except HubSyncError as e:
            logger.error(f"Startup refresh failed: {e}")
        finally:
            self._startup_running = False
        return report

    async def start(self) -> None:
        """Load settings, subscribe to the change feed and schedule the startup refresh."""
        await self.initialize()
        if self.watch and self._watch_task is None:
            self._watch_task = asyncio.create_task(self._watch_loop())
            # Let the watcher subscribe before any caller mutates the vault
            await asyncio.sleep(0)
        if self.mode == SyncMode.ACTIVE:
            self._startup_task = asyncio.create_task(self.startup_refresh())
        logger.info(f"HubSync engine started in mode {self.mode.value}")

    async def wait_idle(self, settle_rounds: int = 3) -> None:
        """Wait until queued notifications are dispatched and every handler finished."""
        while True:
            for _ in range(settle_rounds):
                await asyncio.sleep(0)
            pending = [task for task in self._tasks if not task.done()]
            if self._startup_task is not None and not self._startup_task.done():
                pending.append(self._startup_task)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def stop(self) -> None:
        """Cancel the change feed and any in-flight work, then close the vault."""
        tasks = [t for t in (self._watch_task, self._startup_task) if t is not None]
        tasks.extend(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._watch_task = None
        self._startup_task = None
        await self.vault.close()
        logger.info("HubSync engine stopped")
