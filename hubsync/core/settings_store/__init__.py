"""
Hub settings persistence.
"""

from hubsync.core.settings_store.base import SettingsStore
from hubsync.core.settings_store.memory_store import InMemorySettingsStore
from hubsync.core.settings_store.yaml_store import YamlSettingsStore

__all__ = [
    "SettingsStore",
    "InMemorySettingsStore",
    "YamlSettingsStore",
]
