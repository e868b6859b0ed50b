"""
Tests for vault tree, event and result models.
"""

import pytest

from hubsync.models.events import VaultEvent, VaultEventType
from hubsync.models.sync import DirectoryListing, PassReport, SyncMode
from hubsync.models.vault import Folder, NoteFile, VaultSnapshot, join_path, name_of, parent_of


class TestPathHelpers:
    """Test vault-relative path helpers."""

    def test_parent_of(self):
        assert parent_of("") is None
        assert parent_of("Projects") == ""
        assert parent_of("Projects/Alpha/") == "Projects"

    def test_name_of(self):
        assert name_of("Projects/Alpha") == "Alpha"
        assert name_of("note.md") == "note.md"

    def test_join_path(self):
        assert join_path("", "a.md") == "a.md"
        assert join_path("Projects", "a.md") == "Projects/a.md"


class TestFolder:
    """Test folder properties."""

    def test_root(self):
        root = Folder(path="")

        assert root.is_root is True
        assert root.depth == 0
        assert root.parent_path is None

    def test_nested(self):
        folder = Folder(path="Projects/Alpha", ctime=12.5)

        assert folder.name == "Alpha"
        assert folder.parent_path == "Projects"
        assert folder.depth == 2
        assert folder.is_root is False


class TestNoteFile:
    """Test document name handling."""

    def test_markdown_note(self):
        note = NoteFile(path="Projects/Plan.v2.MD")

        assert note.name == "Plan.v2.MD"
        assert note.basename == "Plan.v2"
        assert note.extension == "md"
        assert note.is_markdown is True
        assert note.parent_path == "Projects"

    def test_root_note(self):
        assert NoteFile(path="readme.md").parent_path == ""

    def test_dotfile_has_no_extension(self):
        note = NoteFile(path="Projects/.gitignore")

        assert note.basename == ".gitignore"
        assert note.extension == ""
        assert note.is_markdown is False

    def test_file_without_extension(self):
        note = NoteFile(path="LICENSE")

        assert note.basename == "LICENSE"
        assert note.is_markdown is False


class TestVaultSnapshot:
    """Test snapshot queries."""

    @pytest.fixture
    def snapshot(self):
        folders = {
            path: Folder(path=path)
            for path in ("", "b", "a", "a/x", "a/x/deep", "b/y")
        }
        files = {
            path: NoteFile(path=path)
            for path in ("root.md", "a/one.md", "a/x/two.md", "a/x/deep/three.md", "a/img.png")
        }
        return VaultSnapshot(folders=folders, files=files)

    def test_all_folders_parents_first(self, snapshot):
        paths = [f.path for f in snapshot.all_folders()]

        assert paths == ["a", "b", "a/x", "b/y", "a/x/deep"]
        assert snapshot.all_folders(include_root=True)[0].is_root

    def test_lookup_strips_slashes(self, snapshot):
        assert snapshot.folder("/a/x/").path == "a/x"
        assert snapshot.file("a/one.md").path == "a/one.md"
        assert snapshot.folder("missing") is None

    def test_children(self, snapshot):
        assert [f.path for f in snapshot.child_folders("")] == ["a", "b"]
        assert [f.path for f in snapshot.child_files("a")] == ["a/img.png", "a/one.md"]

    def test_markdown_files_under(self, snapshot):
        paths = [f.path for f in snapshot.markdown_files_under("a/x")]

        assert paths == ["a/x/deep/three.md", "a/x/two.md"]
        assert len(snapshot.markdown_files_under("")) == 4

    def test_descendant_folders(self, snapshot):
        assert [f.path for f in snapshot.descendant_folders("a")] == ["a/x", "a/x/deep"]


class TestSyncMode:
    """Test deriving the mode from persisted flags."""

    @pytest.mark.parametrize(
        "live_sync, suppressed, expected",
        [
            (True, False, SyncMode.ACTIVE),
            (False, False, SyncMode.PAUSED),
            (True, True, SyncMode.SUPPRESSED_PENDING_REBUILD),
            (False, True, SyncMode.SUPPRESSED_PENDING_REBUILD),
        ],
    )
    def test_from_flags(self, live_sync, suppressed, expected):
        assert SyncMode.from_flags(live_sync, suppressed) is expected


class TestReports:
    """Test pass report bookkeeping."""

    def test_writes_and_merge(self):
        report = PassReport(created=1, unchanged=2)

        merged = report.merge(PassReport(renamed=1, deleted=2, failed=1))

        assert merged is report
        assert report.writes == 4
        assert report.unchanged == 2
        assert report.failed == 1
        assert "1 created" in report.summary()

    def test_empty_listing(self):
        assert DirectoryListing(folder_path="a").is_empty is True


class TestVaultEvent:
    """Test change notification paths."""

    def test_paths_for_rename(self):
        event = VaultEvent(type=VaultEventType.RENAME, path="b.md", old_path="a.md")

        assert event.paths == ["b.md", "a.md"]

    def test_paths_for_create(self):
        event = VaultEvent(type=VaultEventType.CREATE, path="a", is_folder=True)

        assert event.paths == ["a"]
