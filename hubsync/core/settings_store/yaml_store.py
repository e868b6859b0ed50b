"""
YAML file settings store.
"""

import asyncio
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from hubsync.config import HubSettings
from hubsync.core.settings_store.base import SettingsStore
from hubsync.utils.exceptions import SettingsStoreError
from hubsync.utils.logger import get_logger

logger = get_logger(__name__)


class YamlSettingsStore(SettingsStore):
    """
    Stores HubSettings as a YAML mapping.

    Stored keys override the defaults; keys HubSettings doesn't know are
    dropped on load.
    """

    def __init__(self, path: str | Path, defaults: HubSettings | None = None):
        """
        Initialize YAML settings store.

        Args:
            path: Settings file path
            defaults: Settings used for keys missing from the file
        """
        self.path = Path(path)
        self.defaults = defaults or HubSettings()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SettingsStoreError(
                f"Settings file must contain a mapping: {self.path}",
                context={"path": str(self.path)},
            )
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=True, allow_unicode=True)
        os.replace(tmp_path, self.path)

    async def load(self) -> HubSettings:
        try:
            stored = await asyncio.to_thread(self._read)
        except (OSError, yaml.YAMLError) as e:
            raise SettingsStoreError(
                f"Failed to read settings from {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e

        known = {k: v for k, v in stored.items() if k in HubSettings.model_fields}
        try:
            return HubSettings(**{**self.defaults.model_dump(), **known})
        except PydanticValidationError as e:
            raise SettingsStoreError(
                f"Invalid settings in {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e

    async def save(self, settings: HubSettings) -> None:
        try:
            await asyncio.to_thread(self._write, settings.model_dump())
        except OSError as e:
            raise SettingsStoreError(
                f"Failed to write settings to {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e
        logger.debug(f"Saved settings to {self.path}")
