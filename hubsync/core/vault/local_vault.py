"""
Local directory vault.

Documents are read and written with aiofiles; directory walks and structural
changes run in a worker thread. The change feed comes from a watchdog
Observer whose callbacks are bridged onto the event loop.
"""

import asyncio
import os
import shutil
import time
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from hubsync.core.vault.base import VaultStore
from hubsync.models.events import VaultEvent, VaultEventType
from hubsync.models.vault import ROOT_PATH, Folder, NoteFile, VaultSnapshot, join_path
from hubsync.utils.exceptions import NotFoundError, VaultError
from hubsync.utils.logger import get_logger

logger = get_logger(__name__)

TRASH_DIR = ".trash"


def _creation_time(stat: os.stat_result) -> float:
    # st_birthtime exists on macOS/BSD/Windows; Linux only exposes change time
    return getattr(stat, "st_birthtime", None) or stat.st_ctime


class _VaultEventHandler(FileSystemEventHandler):
    """Watchdog handler that forwards structural events to an asyncio queue."""

    def __init__(self, vault: "LocalVault", loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        super().__init__()
        self._vault = vault
        self._loop = loop
        self._queue = queue

    def _publish(self, event: VaultEvent) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def on_created(self, event: FileSystemEvent) -> None:
        path = self._vault.relative(event.src_path)
        if path is None:
            return
        self._publish(
            VaultEvent(type=VaultEventType.CREATE, path=path, is_folder=event.is_directory)
        )

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = self._vault.relative(event.src_path)
        if path is None:
            return
        self._publish(
            VaultEvent(type=VaultEventType.DELETE, path=path, is_folder=event.is_directory)
        )

    def on_moved(self, event: FileSystemEvent) -> None:
        old_path = self._vault.relative(event.src_path)
        new_path = self._vault.relative(event.dest_path)
        if new_path is None:
            # Moved out of the vault
            if old_path is not None:
                self._publish(
                    VaultEvent(
                        type=VaultEventType.DELETE, path=old_path, is_folder=event.is_directory
                    )
                )
            return
        if old_path is None:
            self._publish(
                VaultEvent(type=VaultEventType.CREATE, path=new_path, is_folder=event.is_directory)
            )
            return
        self._publish(
            VaultEvent(
                type=VaultEventType.RENAME,
                path=new_path,
                old_path=old_path,
                is_folder=event.is_directory,
            )
        )


class LocalVault(VaultStore):
    """
    Vault backed by a directory on disk.

    Features:
    - Async document I/O (aiofiles)
    - Trash folder inside the vault instead of permanent deletes
    - Live change feed (watchdog)
    """

    def __init__(self, root: str | Path, encoding: str = "utf-8"):
        """
        Initialize local vault.

        Args:
            root: Vault root directory (created if missing)
            encoding: Text encoding for documents
        """
        self.root = Path(root).resolve()
        self.encoding = encoding
        self.root.mkdir(parents=True, exist_ok=True)

    def relative(self, absolute: str | bytes) -> str | None:
        """Vault-relative POSIX path for an absolute path, or None if outside the vault."""
        if isinstance(absolute, bytes):
            absolute = os.fsdecode(absolute)
        try:
            relative = Path(absolute).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None
        return ROOT_PATH if relative == "." else relative

    def _absolute(self, path: str) -> Path:
        target = (self.root / path.strip("/")).resolve()
        if target != self.root and self.root not in target.parents:
            raise VaultError(f"Path escapes the vault: {path}", context={"path": path})
        return target

    # ═══════════════════════════════════════════════════════════
    # TREE
    # ═══════════════════════════════════════════════════════════

    def _scan(self) -> VaultSnapshot:
        folders: dict[str, Folder] = {ROOT_PATH: Folder(path=ROOT_PATH, ctime=0.0)}
        files: dict[str, NoteFile] = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            rel_dir = "" if rel_dir == "." else rel_dir
            for name in dirnames:
                path = join_path(rel_dir, name)
                try:
                    stat = os.stat(os.path.join(dirpath, name))
                except OSError:
                    continue
                folders[path] = Folder(path=path, ctime=_creation_time(stat))
            for name in filenames:
                path = join_path(rel_dir, name)
                try:
                    stat = os.stat(os.path.join(dirpath, name))
                except OSError:
                    continue
                files[path] = NoteFile(path=path, ctime=_creation_time(stat), mtime=stat.st_mtime)
        return VaultSnapshot(folders=folders, files=files)

    async def snapshot(self) -> VaultSnapshot:
        return await asyncio.to_thread(self._scan)

    async def create_folder(self, path: str) -> None:
        target = self._absolute(path)
        try:
            await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise VaultError(f"Failed to create folder {path}: {e}", context={"path": path}) from e

    # ═══════════════════════════════════════════════════════════
    # DOCUMENTS
    # ═══════════════════════════════════════════════════════════

    async def read(self, path: str) -> str:
        target = self._absolute(path)
        try:
            async with aiofiles.open(target, encoding=self.encoding, newline="") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {path}", context={"path": path}) from e
        except OSError as e:
            raise VaultError(f"Failed to read {path}: {e}", context={"path": path}) from e

    async def create(self, path: str, content: str) -> None:
        target = self._absolute(path)
        if not target.parent.is_dir():
            raise VaultError(f"Parent folder does not exist for {path}", context={"path": path})
        try:
            async with aiofiles.open(target, "x", encoding=self.encoding, newline="") as f:
                await f.write(content)
        except FileExistsError as e:
            raise VaultError(f"Path already exists: {path}", context={"path": path}) from e
        except OSError as e:
            raise VaultError(f"Failed to create {path}: {e}", context={"path": path}) from e

    async def modify(self, path: str, content: str) -> None:
        target = self._absolute(path)
        if not target.is_file():
            raise NotFoundError(f"File not found: {path}", context={"path": path})
        try:
            async with aiofiles.open(target, "w", encoding=self.encoding, newline="") as f:
                await f.write(content)
        except OSError as e:
            raise VaultError(f"Failed to write {path}: {e}", context={"path": path}) from e

    # ═══════════════════════════════════════════════════════════
    # STRUCTURE
    # ═══════════════════════════════════════════════════════════

    async def rename(self, old_path: str, new_path: str) -> None:
        source = self._absolute(old_path)
        target = self._absolute(new_path)
        if not source.exists():
            raise NotFoundError(f"Path not found: {old_path}", context={"path": old_path})
        if target.exists():
            raise VaultError(
                f"Target already exists: {new_path}",
                context={"old_path": old_path, "new_path": new_path},
            )
        try:
            await asyncio.to_thread(os.rename, source, target)
        except OSError as e:
            raise VaultError(
                f"Failed to rename {old_path} -> {new_path}: {e}",
                context={"old_path": old_path, "new_path": new_path},
            ) from e

    def _remove(self, target: Path) -> None:
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()

    async def delete(self, path: str) -> None:
        target = self._absolute(path)
        if target == self.root:
            raise VaultError("Refusing to delete the vault root", context={"path": path})
        if not target.exists():
            raise NotFoundError(f"Path not found: {path}", context={"path": path})
        try:
            await asyncio.to_thread(self._remove, target)
        except OSError as e:
            raise VaultError(f"Failed to delete {path}: {e}", context={"path": path}) from e

    def _move_to_trash(self, target: Path) -> None:
        trash = self.root / TRASH_DIR
        trash.mkdir(exist_ok=True)
        destination = trash / target.name
        if destination.exists():
            destination = trash / f"{target.stem}.{int(time.time() * 1000)}{target.suffix}"
        shutil.move(str(target), str(destination))

    async def trash(self, path: str) -> None:
        target = self._absolute(path)
        if target == self.root:
            raise VaultError("Refusing to trash the vault root", context={"path": path})
        if not target.exists():
            raise NotFoundError(f"Path not found: {path}", context={"path": path})
        try:
            await asyncio.to_thread(self._move_to_trash, target)
        except OSError as e:
            raise VaultError(f"Failed to trash {path}: {e}", context={"path": path}) from e

    async def exists(self, path: str) -> bool:
        return self._absolute(path).exists()

    # ═══════════════════════════════════════════════════════════
    # CHANGE FEED
    # ═══════════════════════════════════════════════════════════

    async def watch(self) -> AsyncIterator[VaultEvent]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[VaultEvent] = asyncio.Queue()
        observer = Observer()
        observer.schedule(_VaultEventHandler(self, loop, queue), str(self.root), recursive=True)
        observer.start()
        logger.info(f"Watching vault at {self.root}")
        try:
            while True:
                yield await queue.get()
        finally:
            observer.stop()
            await asyncio.to_thread(observer.join, 2.0)
            logger.info(f"Stopped watching vault at {self.root}")
