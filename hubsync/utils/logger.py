"""
Logging setup for HubSync, built on Loguru.

Modules log through `get_logger(__name__)`, which tags every record with the
module it came from. `setup_logging` installs the sinks described by a
LoggingConfig: a colored console sink and, optionally, a rotated file sink.
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from hubsync.config import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]}:{function}:{line} - {message}"


def log_file_path(config: "LoggingConfig") -> Path:
    """Sink path for the file log; Loguru fills in the date."""
    return Path(config.log_dir) / f"{config.file_prefix}_{{time:YYYY-MM-DD}}.log"


def setup_logging(config: "LoggingConfig") -> None:
    """Replace every Loguru sink with the ones the config asks for."""
    logger.remove()
    # Records logged without get_logger still render the module field
    logger.configure(extra={"module": config.file_prefix})

    logger.add(
        sys.stderr,
        level=config.level,
        format=CONSOLE_FORMAT,
        colorize=True,
        serialize=False,
    )

    if config.log_to_file:
        Path(config.log_dir).mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file_path(config),
            level=config.level,
            format=FILE_FORMAT,
            rotation=config.file_rotation,
            retention=config.file_retention,
            compression=config.compression,
            serialize=config.serialize,
            enqueue=True,
        )


def get_logger(name: str):
    """Get a logger instance for a module."""
    return logger.bind(module=name)
