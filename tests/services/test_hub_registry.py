"""
Tests for hub naming and lookup from vault snapshots.
"""

import pytest

from hubsync.config import HubSettings
from hubsync.services.hub_registry import HubRegistry, hub_file_path


@pytest.mark.unit
@pytest.mark.asyncio
class TestNumbering:
    """Test the numbering rule for same-named folders."""

    async def test_unique_name_gets_plain_hub_name(self, vault, registry):
        await vault.create_folder("Projects")
        snapshot = await vault.snapshot()

        assert registry.expected_hub_name(snapshot, snapshot.folder("Projects")) == "Projects_"

    async def test_same_names_numbered_by_creation_time(self, vault, registry):
        """Ordinals follow creation time, not path order."""
        await vault.create_folder("a/X", ctime=30.0)
        await vault.create_folder("b/X", ctime=10.0)
        await vault.create_folder("c/X", ctime=20.0)
        snapshot = await vault.snapshot()

        names = {
            path: registry.expected_hub_name(snapshot, snapshot.folder(path))
            for path in ("a/X", "b/X", "c/X")
        }

        assert names == {"b/X": "X_1", "c/X": "X_2", "a/X": "X_3"}

    async def test_equal_creation_times_break_ties_by_path(self, vault, registry):
        await vault.create_folder("b/X", ctime=5.0)
        await vault.create_folder("a/X", ctime=5.0)
        snapshot = await vault.snapshot()

        group = registry.same_name_group(snapshot, "X")

        assert [f.path for f in group] == ["a/X", "b/X"]

    async def test_excluded_folders_do_not_count(self, vault, registry):
        await vault.create_folder("Projects/X")
        await vault.create_folder("ATTACHMENTS/X")
        await vault.create_folder(".hidden/X")
        snapshot = await vault.snapshot()

        assert registry.name_counts(snapshot)["X"] == 1
        assert registry.expected_hub_name(snapshot, snapshot.folder("Projects/X")) == "X_"

    async def test_custom_suffix(self, vault):
        registry = HubRegistry(HubSettings(suffix="--"))
        await vault.create_folder("a/X")
        await vault.create_folder("b/X")
        snapshot = await vault.snapshot()

        assert registry.expected_hub_path(snapshot, snapshot.folder("b/X")) == "b/X/X--2.md"


@pytest.mark.unit
@pytest.mark.asyncio
class TestFindHub:
    """Test locating existing hub documents."""

    async def test_find_plain_and_numbered_hub(self, vault, registry, make_tree):
        await make_tree(
            folders=["Projects", "Other"],
            notes={"Projects/Projects_.md": "", "Other/Other_4.md": "", "Other/todo.md": ""},
        )
        snapshot = await vault.snapshot()

        assert registry.find_hub(snapshot, snapshot.folder("Projects")).path == "Projects/Projects_.md"
        assert registry.find_hub(snapshot, snapshot.folder("Other")).path == "Other/Other_4.md"

    async def test_find_hub_by_prior_name(self, vault, registry, make_tree):
        await make_tree(folders=["New"], notes={"New/Old_.md": ""})
        snapshot = await vault.snapshot()
        folder = snapshot.folder("New")

        assert registry.find_hub(snapshot, folder) is None
        assert registry.find_hub(snapshot, folder, folder_name="Old").path == "New/Old_.md"

    async def test_find_hub_prefers_expected_name(self, vault, registry, make_tree):
        await make_tree(folders=["X"], notes={"X/X_.md": "", "X/X_2.md": ""})
        snapshot = await vault.snapshot()

        hub = registry.find_hub(snapshot, snapshot.folder("X"), prefer="X_2")

        assert hub.path == "X/X_2.md"

    async def test_non_markdown_files_are_not_hubs(self, vault, registry, make_tree):
        await make_tree(folders=["X"], notes={"X/X_.canvas": ""})
        snapshot = await vault.snapshot()

        assert registry.find_hub(snapshot, snapshot.folder("X")) is None

    async def test_is_hub_document(self, vault, registry, make_tree):
        await make_tree(
            folders=["X"],
            notes={"X/X_.md": "", "X/note.md": "", "Root_.md": ""},
        )
        snapshot = await vault.snapshot()

        assert registry.is_hub_document(snapshot, snapshot.file("X/X_.md")) is True
        assert registry.is_hub_document(snapshot, snapshot.file("X/note.md")) is False
        assert registry.is_hub_document(snapshot, snapshot.file("Root_.md")) is False

    async def test_hubs_with_suffix(self, vault, registry, make_tree):
        await make_tree(
            folders=["A", "B"],
            notes={"A/A_.md": "", "B/B_2.md": "", "B/B--.md": "", "B/note.md": ""},
        )
        snapshot = await vault.snapshot()

        old = registry.hubs_with_suffix(snapshot, "_")
        new = registry.hubs_with_suffix(snapshot, "--")

        assert sorted(h.path for h in old) == ["A/A_.md", "B/B_2.md"]
        assert [h.path for h in new] == ["B/B--.md"]


@pytest.mark.unit
@pytest.mark.asyncio
class TestPresentation:
    """Test hub paths and directory listings."""

    async def test_hub_paths_skip_excluded_folders(self, vault, registry):
        await vault.create_folder("Projects/Alpha")
        await vault.create_folder("ATTACHMENTS/img")
        await vault.create_folder("Projects/.drafts")
        snapshot = await vault.snapshot()

        assert registry.hub_paths(snapshot) == {
            "Projects/Projects_.md",
            "Projects/Alpha/Alpha_.md",
        }

    async def test_directory_listing(self, vault, registry, make_tree):
        await make_tree(
            folders=["Projects/beta", "Projects/Alpha", "Projects/.drafts", "Projects/ATTACHMENTS"],
            notes={
                "Projects/Projects_.md": "",
                "Projects/zeta.md": "",
                "Projects/Apple.md": "",
                "Projects/.secret.md": "",
                "Projects/image.png": "",
            },
        )
        snapshot = await vault.snapshot()

        listing = registry.directory_listing(snapshot, "Projects")

        assert [e.name for e in listing.folders] == ["Alpha", "beta"]
        assert listing.folders[0].path == "Projects/Alpha/Alpha_.md"
        assert all(e.is_folder for e in listing.folders)
        assert [e.name for e in listing.notes] == ["Apple", "zeta"]

    async def test_directory_listing_skips_source_document(self, vault, registry, make_tree):
        await make_tree(folders=["P"], notes={"P/a.md": "", "P/b.md": ""})
        snapshot = await vault.snapshot()

        listing = registry.directory_listing(snapshot, "P", source_path="P/a.md")

        assert [e.name for e in listing.notes] == ["b"]

    async def test_directory_listing_missing_folder(self, vault, registry):
        snapshot = await vault.snapshot()

        assert registry.directory_listing(snapshot, "Nope").is_empty


@pytest.mark.unit
def test_hub_file_path():
    assert hub_file_path("", "X_") == "X_.md"
    assert hub_file_path("a/X", "X_2") == "a/X/X_2.md"
