"""
In-memory vault.

Dict-backed tree used by tests and by the `memory` backend. Every mutation
publishes a VaultEvent to all active watchers, including mutations made by
the engine itself, which is what the write lock exists to filter out.
"""

import asyncio
import itertools
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

from hubsync.core.vault.base import VaultStore
from hubsync.models.events import VaultEvent, VaultEventType
from hubsync.models.vault import ROOT_PATH, Folder, NoteFile, VaultSnapshot, parent_of
from hubsync.utils.exceptions import NotFoundError, VaultError


@dataclass
class _StoredFile:
    content: str
    ctime: float
    mtime: float


def _clean(path: str) -> str:
    return path.strip().strip("/")


class InMemoryVault(VaultStore):
    """
    Vault held entirely in memory.

    Creation times come from `clock`; the default is a logical clock that
    ticks once per call, so objects created one after another always have
    strictly increasing creation times.
    """

    def __init__(self, clock: Callable[[], float] | None = None):
        """
        Initialize an empty vault.

        Args:
            clock: Optional timestamp source for ctime/mtime
        """
        ticks = itertools.count(1)
        self._clock = clock or (lambda: float(next(ticks)))
        self._folders: dict[str, float] = {ROOT_PATH: 0.0}
        self._files: dict[str, _StoredFile] = {}
        self._watchers: list[asyncio.Queue[VaultEvent]] = []
        # Content-changing operations performed so far
        self.writes = 0

    def _publish(self, event: VaultEvent) -> None:
        for queue in list(self._watchers):
            queue.put_nowait(event)

    def _require_parent(self, path: str) -> None:
        parent = parent_of(path)
        if parent is not None and parent not in self._folders:
            raise VaultError(f"Parent folder does not exist: {parent}", context={"path": path})

    def _taken(self, path: str) -> bool:
        return path in self._files or path in self._folders

    async def snapshot(self) -> VaultSnapshot:
        return VaultSnapshot(
            folders={path: Folder(path=path, ctime=ctime) for path, ctime in self._folders.items()},
            files={
                path: NoteFile(path=path, ctime=stored.ctime, mtime=stored.mtime)
                for path, stored in self._files.items()
            },
        )

    async def create_folder(self, path: str, ctime: float | None = None) -> None:
        """
        Create a folder and any missing parents.

        Args:
            path: Vault-relative folder path
            ctime: Explicit creation time for the leaf folder
        """
        path = _clean(path)
        if path in self._files:
            raise VaultError(f"A file already exists at {path}", context={"path": path})
        missing = []
        current: str | None = path
        while current is not None and current not in self._folders:
            missing.append(current)
            current = parent_of(current)
        for folder_path in reversed(missing):
            stamp = ctime if (ctime is not None and folder_path == path) else self._clock()
            self._folders[folder_path] = stamp
            self._publish(VaultEvent(type=VaultEventType.CREATE, path=folder_path, is_folder=True))

    async def read(self, path: str) -> str:
        path = _clean(path)
        stored = self._files.get(path)
        if stored is None:
            raise NotFoundError(f"File not found: {path}", context={"path": path})
        return stored.content

    async def create(self, path: str, content: str) -> None:
        path = _clean(path)
        if self._taken(path):
            raise VaultError(f"Path already exists: {path}", context={"path": path})
        self._require_parent(path)
        now = self._clock()
        self._files[path] = _StoredFile(content=content, ctime=now, mtime=now)
        self.writes += 1
        self._publish(VaultEvent(type=VaultEventType.CREATE, path=path))

    async def modify(self, path: str, content: str) -> None:
        path = _clean(path)
        stored = self._files.get(path)
        if stored is None:
            raise NotFoundError(f"File not found: {path}", context={"path": path})
        stored.content = content
        stored.mtime = self._clock()
        self.writes += 1

    async def rename(self, old_path: str, new_path: str) -> None:
        old_path, new_path = _clean(old_path), _clean(new_path)
        if not self._taken(old_path) or old_path == ROOT_PATH:
            raise NotFoundError(f"Path not found: {old_path}", context={"path": old_path})
        if self._taken(new_path):
            raise VaultError(
                f"Target already exists: {new_path}",
                context={"old_path": old_path, "new_path": new_path},
            )
        self._require_parent(new_path)

        if old_path in self._files:
            self._files[new_path] = self._files.pop(old_path)
            self.writes += 1
            self._publish(VaultEvent(type=VaultEventType.RENAME, path=new_path, old_path=old_path))
            return

        if new_path.startswith(old_path + "/"):
            raise VaultError(
                f"Cannot move a folder into itself: {old_path} -> {new_path}",
                context={"old_path": old_path, "new_path": new_path},
            )
        prefix = old_path + "/"
        for folder_path in [p for p in self._folders if p == old_path or p.startswith(prefix)]:
            self._folders[new_path + folder_path[len(old_path) :]] = self._folders.pop(folder_path)
        for file_path in [p for p in self._files if p.startswith(prefix)]:
            self._files[new_path + file_path[len(old_path) :]] = self._files.pop(file_path)
        self.writes += 1
        self._publish(
            VaultEvent(type=VaultEventType.RENAME, path=new_path, old_path=old_path, is_folder=True)
        )

    async def delete(self, path: str) -> None:
        path = _clean(path)
        if path in self._files:
            del self._files[path]
            self.writes += 1
            self._publish(VaultEvent(type=VaultEventType.DELETE, path=path))
            return
        if path not in self._folders or path == ROOT_PATH:
            raise NotFoundError(f"Path not found: {path}", context={"path": path})
        prefix = path + "/"
        for file_path in [p for p in self._files if p.startswith(prefix)]:
            del self._files[file_path]
        removed = [p for p in self._folders if p == path or p.startswith(prefix)]
        for folder_path in removed:
            del self._folders[folder_path]
        self.writes += 1
        # One event per removed folder, deepest first, as a recursive delete on disk reports them
        for folder_path in sorted(removed, key=lambda p: (-p.count("/"), p)):
            self._publish(VaultEvent(type=VaultEventType.DELETE, path=folder_path, is_folder=True))

    async def watch(self) -> AsyncIterator[VaultEvent]:
        queue: asyncio.Queue[VaultEvent] = asyncio.Queue()
        self._watchers.append(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._watchers.remove(queue)
