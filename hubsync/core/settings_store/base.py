"""
Base interface for hub settings persistence.
"""

from abc import ABC, abstractmethod

from hubsync.config import HubSettings


class SettingsStore(ABC):
    """Abstract base class for hub settings stores."""

    @abstractmethod
    async def load(self) -> HubSettings:
        """
        Load stored settings merged over defaults.

        Returns:
            HubSettings instance
        """
        pass

    @abstractmethod
    async def save(self, settings: HubSettings) -> None:
        """
        Persist settings.

        Args:
            settings: Settings to store
        """
        pass
