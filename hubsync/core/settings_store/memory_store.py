"""
In-memory settings store.
"""

from hubsync.config import HubSettings
from hubsync.core.settings_store.base import SettingsStore


class InMemorySettingsStore(SettingsStore):
    """Keeps a private copy of the settings; counts saves."""

    def __init__(self, initial: HubSettings | None = None):
        self._settings = (initial or HubSettings()).model_copy(deep=True)
        self.save_count = 0

    async def load(self) -> HubSettings:
        return self._settings.model_copy(deep=True)

    async def save(self, settings: HubSettings) -> None:
        self._settings = settings.model_copy(deep=True)
        self.save_count += 1
