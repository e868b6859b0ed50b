"""
Tests for hub document creation, renaming and content.
"""

import pytest

from hubsync.config import HubSettings
from hubsync.services.hub_builder import HubContentBuilder, wiki_link
from hubsync.services.hub_registry import HubRegistry
from hubsync.services.stabilizer import HubStabilizer
from hubsync.services.write_lock import WriteLock

TOP_LEVEL_HUB = "## DIRECTORY\n\n```display_folder_directory\n```\n"


def nested_hub(parent_hub: str) -> str:
    return f"## DIRECTORY\n\n[[{parent_hub}]]\n\n```display_folder_directory\n```\n"


@pytest.mark.unit
@pytest.mark.asyncio
class TestBuildContent:
    """Test the desired hub content."""

    async def test_top_level_folder_has_no_parent_link(self, vault, builder):
        await vault.create_folder("Projects")

        assert await builder.build_content("Projects") == TOP_LEVEL_HUB

    async def test_nested_folder_links_to_parent_hub(self, vault, builder, make_tree):
        await make_tree(folders=["Projects/Alpha"], notes={"Projects/Projects_.md": ""})

        assert await builder.build_content("Projects/Alpha") == nested_hub("Projects_")

    async def test_parent_link_uses_expected_name_when_parent_hub_missing(self, vault, builder):
        """The waiter gives up and the link still targets the expected name."""
        await vault.create_folder("Projects/Alpha")

        assert await builder.build_content("Projects/Alpha") == nested_hub("Projects_")

    async def test_parent_link_disabled(self, vault, clock):
        registry = HubRegistry(HubSettings(parent_link=False, heading="# Index"))
        builder = HubContentBuilder(
            vault, registry, WriteLock(clock=clock), HubStabilizer(vault, registry, 1, 0.0)
        )
        await vault.create_folder("Projects/Alpha")

        content = await builder.build_content("Projects/Alpha")

        assert content == "# Index\n\n```display_folder_directory\n```\n"


@pytest.mark.unit
@pytest.mark.asyncio
class TestEnsureExists:
    """Test creating and refreshing a single folder's hub."""

    async def test_creates_missing_hub(self, vault, builder, write_lock):
        await vault.create_folder("Projects")

        report = await builder.ensure_exists("Projects")

        assert report.created == 1
        assert await vault.read("Projects/Projects_.md") == TOP_LEVEL_HUB
        assert write_lock.is_locked("Projects/Projects_.md")

    async def test_second_call_writes_nothing(self, vault, builder):
        await vault.create_folder("Projects")
        await builder.ensure_exists("Projects")
        writes = vault.writes

        report = await builder.ensure_exists("Projects")

        assert report.writes == 0
        assert report.unchanged == 1
        assert vault.writes == writes

    async def test_rewrites_outdated_content(self, vault, builder, make_tree):
        await make_tree(folders=["Projects"], notes={"Projects/Projects_.md": "stale"})

        report = await builder.ensure_exists("Projects")

        assert report.updated == 1
        assert await vault.read("Projects/Projects_.md") == TOP_LEVEL_HUB

    async def test_finds_hub_by_prior_name(self, vault, builder, make_tree):
        """A folder renamed from Old keeps using Old_.md instead of getting a second hub."""
        await make_tree(folders=["New"], notes={"New/Old_.md": TOP_LEVEL_HUB})

        report = await builder.ensure_exists("New", prior_name="Old")

        assert report.created == 0
        snapshot = await vault.snapshot()
        assert snapshot.file("New/New_.md") is None

    async def test_root_and_missing_folders_are_ignored(self, vault, builder):
        assert (await builder.ensure_exists("")).writes == 0
        assert (await builder.ensure_exists("Nope")).writes == 0

    async def test_creates_numbered_hub_in_same_name_group(self, vault, builder):
        await vault.create_folder("a/X")
        await vault.create_folder("b/X")

        await builder.ensure_exists("b/X")

        snapshot = await vault.snapshot()
        assert snapshot.file("b/X/X_2.md") is not None


@pytest.mark.unit
@pytest.mark.asyncio
class TestNumberedHubs:
    """Test numbering assignment, renames and demotion."""

    async def test_assigns_numbers_by_creation_order(self, vault, builder, make_tree):
        await make_tree(
            folders=["a/X", "b/X"],
            notes={"a/a_.md": "", "b/b_.md": "", "a/X/X_.md": "", "b/X/X_.md": ""},
        )

        report = await builder.assign_numbered_hubs("X")

        snapshot = await vault.snapshot()
        assert snapshot.file("a/X/X_1.md") is not None
        assert snapshot.file("b/X/X_2.md") is not None
        assert snapshot.file("a/X/X_.md") is None
        assert report.renamed == 2

    async def test_creates_missing_numbered_hub(self, vault, builder, make_tree):
        await make_tree(folders=["a/X", "b/X"], notes={"a/X/X_1.md": ""})

        report = await builder.assign_numbered_hubs("X")

        assert report.created == 1
        snapshot = await vault.snapshot()
        assert snapshot.file("b/X/X_2.md") is not None

    async def test_demotes_single_survivor(self, vault, builder, make_tree):
        await make_tree(folders=["q/Y"], notes={"q/Y/Y_2.md": ""})

        report = await builder.assign_numbered_hubs("Y")

        assert report.renamed == 1
        snapshot = await vault.snapshot()
        assert snapshot.file("q/Y/Y_.md") is not None
        assert snapshot.file("q/Y/Y_2.md") is None

    async def test_rename_marks_both_paths(self, vault, builder, write_lock, make_tree):
        await make_tree(folders=["q/Y"], notes={"q/Y/Y_2.md": ""})

        await builder.assign_numbered_hubs("Y")

        assert write_lock.is_locked("q/Y/Y_2.md")
        assert write_lock.is_locked("q/Y/Y_.md")

    async def test_unknown_name_is_noop(self, vault, builder):
        report = await builder.assign_numbered_hubs("Nothing")

        assert report.writes == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_hubs_with_suffix(vault, builder, make_tree):
    await make_tree(
        folders=["A", "B"],
        notes={"A/A_.md": "", "B/B_2.md": "", "B/note.md": "body"},
    )

    report = await builder.delete_hubs_with_suffix("_")

    assert report.deleted == 2
    snapshot = await vault.snapshot()
    assert sorted(snapshot.files) == ["B/note.md"]


@pytest.mark.unit
def test_wiki_link():
    assert wiki_link("X_2") == "[[X_2]]"
