"""
Configuration for HubSync.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)

HubSettings is the flat key/value block the engine consumes. It is persisted
by a settings store next to the vault; everything else here is process
configuration.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from hubsync.utils.exceptions import ConfigurationError

# Characters that cannot appear in a file name on at least one supported platform
_INVALID_SUFFIX_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

DEFAULT_SUFFIX = "_"


class HubSettings(BaseModel):
    """Hub naming, exclusion and sync toggles."""

    suffix: str = DEFAULT_SUFFIX
    # Suffix the vault was last fully refreshed with; differs from suffix while a migration is pending
    previous_suffix: str = DEFAULT_SUFFIX
    heading: str = "## DIRECTORY"
    excluded_names: list[str] = Field(default_factory=lambda: [".trash", "ATTACHMENTS", ".hubsync"])
    exclude_hidden: bool = True
    parent_link: bool = True
    auto_hide_links: bool = False
    blank_line_before_link: bool = False
    separator_after_link: bool = True
    hide_hubs_in_explorer: bool = True
    live_sync: bool = True
    suppressed_until_rebuild: bool = True

    @field_validator("suffix", "previous_suffix")
    @classmethod
    def validate_suffix(cls, value: str) -> str:
        if not value:
            return DEFAULT_SUFFIX
        if _INVALID_SUFFIX_CHARS.search(value):
            raise ValueError(f"Suffix contains characters not allowed in file names: {value!r}")
        return value

    @field_validator("excluded_names")
    @classmethod
    def clean_excluded_names(cls, value: list[str]) -> list[str]:
        return [name.strip() for name in value if name and name.strip()]

    @property
    def migration_pending(self) -> bool:
        """True while hubs or links may still carry the previous suffix."""
        return self.suffix != (self.previous_suffix or self.suffix)

    def with_new_suffix(self, suffix: str) -> "HubSettings":
        """
        Return a copy using a new suffix.

        The old suffix is kept in previous_suffix so the next rebuild can find
        and migrate hubs and links that still use it.
        """
        suffix = suffix or DEFAULT_SUFFIX
        if suffix == self.suffix:
            return self.model_copy()
        data = self.model_dump()
        data["previous_suffix"] = self.suffix
        data["suffix"] = suffix
        return HubSettings(**data)


class TimingConfig(BaseModel):
    """Retry and suppression windows (seconds)."""

    hub_wait_attempts: int = Field(default=60, ge=1)
    hub_wait_interval: float = Field(default=0.1, ge=0.0)
    write_lock_ttl: float = Field(default=1.2, gt=0.0)
    startup_delay: float = Field(default=2.0, ge=0.0)


class VaultConfig(BaseModel):
    """Vault backend configuration."""

    backend: str = "local"  # local, memory
    root: str = "."
    settings_file: str = ".hubsync/settings.yaml"
    watch: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    # Log files are named <file_prefix>_<date>.log
    file_prefix: str = "hubsync"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class ServerConfig(BaseModel):
    """HTTP server settings used by main.py."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    reload: bool = False


class Config(BaseModel):
    """Main configuration."""

    vault: VaultConfig = Field(default_factory=VaultConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    # Defaults for a vault that has no stored settings yet
    hub: HubSettings = Field(default_factory=HubSettings)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            HUBSYNC_VAULT_BACKEND: Vault backend (local, memory)
            HUBSYNC_VAULT_ROOT: Vault root directory
            HUBSYNC_SETTINGS_FILE: Settings file, relative to the vault root
            HUBSYNC_VAULT_WATCH: Start the change-notification feed
            HUBSYNC_HUB_WAIT_ATTEMPTS: Stabilization poll attempts
            HUBSYNC_HUB_WAIT_INTERVAL: Seconds between stabilization polls
            HUBSYNC_WRITE_LOCK_TTL: Self-write suppression window in seconds
            HUBSYNC_STARTUP_DELAY: Seconds before the startup refresh
            HUBSYNC_HUB_SUFFIX: Default hub suffix for new vaults
            HUBSYNC_LOG_LEVEL: Log level
            HUBSYNC_LOG_FILE_PREFIX: Log file name prefix
            HUBSYNC_HOST: HTTP server host
            HUBSYNC_PORT: HTTP server port
            HUBSYNC_RELOAD: Restart the server on code changes
        """
        # Load .env file if provided or exists
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            # If value is empty string, return default
            if value == "":
                return default
            # Convert boolean strings
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            # Convert numeric strings
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        suffix = get_env("HUBSYNC_HUB_SUFFIX", DEFAULT_SUFFIX)

        return cls(
            vault=VaultConfig(
                backend=get_env("HUBSYNC_VAULT_BACKEND", "local"),
                root=get_env("HUBSYNC_VAULT_ROOT", "."),
                settings_file=get_env("HUBSYNC_SETTINGS_FILE", ".hubsync/settings.yaml"),
                watch=get_env("HUBSYNC_VAULT_WATCH", True),
            ),
            timing=TimingConfig(
                hub_wait_attempts=get_env("HUBSYNC_HUB_WAIT_ATTEMPTS", 60),
                hub_wait_interval=get_env("HUBSYNC_HUB_WAIT_INTERVAL", 0.1),
                write_lock_ttl=get_env("HUBSYNC_WRITE_LOCK_TTL", 1.2),
                startup_delay=get_env("HUBSYNC_STARTUP_DELAY", 2.0),
            ),
            hub=HubSettings(suffix=suffix, previous_suffix=suffix),
            logging=LoggingConfig(
                level=get_env("HUBSYNC_LOG_LEVEL", "INFO"),
                log_to_file=get_env("HUBSYNC_LOG_TO_FILE", True),
                log_dir=get_env("HUBSYNC_LOG_DIR", "logs"),
                file_rotation=get_env("HUBSYNC_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("HUBSYNC_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("HUBSYNC_LOG_COMPRESSION", "zip"),
                serialize=get_env("HUBSYNC_LOG_SERIALIZE", True),
                file_prefix=get_env("HUBSYNC_LOG_FILE_PREFIX", "hubsync"),
            ),
            server=ServerConfig(
                host=get_env("HUBSYNC_HOST", "127.0.0.1"),
                port=get_env("HUBSYNC_PORT", 8000),
                reload=get_env("HUBSYNC_RELOAD", False),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ConfigurationError: If the YAML is broken or holds invalid values
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        return cls._build(_load_yaml_mapping(yaml_path), yaml_path)

    @classmethod
    def _build(cls, data: dict[str, Any], source: str | Path | None) -> "Config":
        try:
            return cls(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}", context={"path": str(source) if source else None}
            ) from e

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        # Start with YAML if provided
        if yaml_path and Path(yaml_path).exists():
            config_dict = _load_yaml_mapping(Path(yaml_path))
        else:
            config_dict = {}

        # Override with env vars if present
        env_config = cls.from_env(env_file=env_file)

        # Merge: env vars override YAML
        final_dict = {**config_dict}

        # Apply env overrides (non-default values)
        default = cls()
        if env_config.vault != default.vault:
            final_dict["vault"] = env_config.vault.model_dump()
        if env_config.timing != default.timing:
            final_dict["timing"] = env_config.timing.model_dump()
        if env_config.hub != default.hub:
            final_dict["hub"] = env_config.hub.model_dump()
        if env_config.logging != default.logging:
            final_dict["logging"] = env_config.logging.model_dump()
        if env_config.server != default.server:
            final_dict["server"] = env_config.server.model_dump()

        return cls._build(final_dict, yaml_path) if final_dict else env_config


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Read a YAML config file that must hold a mapping of sections."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file is not valid YAML: {e}", context={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError("Config file must hold a mapping", context={"path": str(path)})
    return data


# Default config instance
default_config = Config()
