"""Fixtures for service tests.

Fixtures use function scope to avoid event loop issues.
Every test gets a fresh in-memory vault (logical clock: each folder or file
created later has a strictly larger creation time) and a fake monotonic
clock for the write lock, so suppression windows never expire on their own.
"""

from collections.abc import AsyncGenerator

import pytest

from hubsync.config import HubSettings, TimingConfig
from hubsync.core.settings_store import InMemorySettingsStore
from hubsync.core.vault import InMemoryVault
from hubsync.services.hub_builder import HubContentBuilder
from hubsync.services.hub_registry import HubRegistry
from hubsync.services.link_upserter import LinkUpserter
from hubsync.services.reconciler import HubSyncEngine
from hubsync.services.stabilizer import HubStabilizer
from hubsync.services.write_lock import WriteLock

FAST_TIMING = TimingConfig(
    hub_wait_attempts=3,
    hub_wait_interval=0.0,
    write_lock_ttl=1.2,
    startup_delay=0.0,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# Fixtures


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def vault() -> InMemoryVault:
    return InMemoryVault()


@pytest.fixture
def make_tree(vault):
    """Create folders (in order) and notes {path: content} in the test vault."""

    async def _make(folders=(), notes=None) -> None:
        for folder in folders:
            await vault.create_folder(folder)
        for path, content in (notes or {}).items():
            await vault.create(path, content)

    return _make


@pytest.fixture
def settings() -> HubSettings:
    """Default settings with sync active (not waiting for a first rebuild)."""
    return HubSettings(suppressed_until_rebuild=False)


@pytest.fixture
def registry(settings) -> HubRegistry:
    return HubRegistry(settings)


@pytest.fixture
def write_lock(clock) -> WriteLock:
    return WriteLock(ttl=FAST_TIMING.write_lock_ttl, clock=clock)


@pytest.fixture
def stabilizer(vault, registry) -> HubStabilizer:
    return HubStabilizer(
        vault,
        registry,
        attempts=FAST_TIMING.hub_wait_attempts,
        interval=FAST_TIMING.hub_wait_interval,
    )


@pytest.fixture
def builder(vault, registry, write_lock, stabilizer) -> HubContentBuilder:
    return HubContentBuilder(vault, registry, write_lock, stabilizer)


@pytest.fixture
def upserter(vault, registry, write_lock, stabilizer) -> LinkUpserter:
    return LinkUpserter(vault, registry, write_lock, stabilizer)


@pytest.fixture
def settings_store(settings) -> InMemorySettingsStore:
    return InMemorySettingsStore(settings)


@pytest.fixture
async def engine(vault, settings_store, settings, clock) -> AsyncGenerator:
    """Engine without a change feed; tests drive handlers directly."""
    hub_engine = HubSyncEngine(
        vault=vault,
        settings_store=settings_store,
        timing=FAST_TIMING,
        defaults=settings,
        watch=False,
        clock=clock,
    )
    await hub_engine.initialize()
    yield hub_engine
    await hub_engine.stop()
