"""
HubSync server entry point.

Run with: python main.py
Host, port and reload come from the `server` section of config.yaml or the
HUBSYNC_HOST / HUBSYNC_PORT / HUBSYNC_RELOAD environment variables.
"""

import os

import uvicorn

from hubsync.config import Config


def run() -> None:
    config = Config.from_env_or_yaml(yaml_path=os.getenv("HUBSYNC_CONFIG", "config.yaml"))

    uvicorn.run(
        "app:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    run()
