"""
HubSync FastAPI Application

A REST API server for the HubSync engine.
Provides the command surface (rebuild, remove, unhide), hub paths and
directory listings for a file browser, and hub settings management.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from hubsync.config import Config, HubSettings
from hubsync.models.sync import CommandResult, DirectoryListing
from hubsync.services.reconciler import HubSyncEngine
from hubsync.utils.exceptions import NotFoundError, ValidationError
from hubsync.utils.logger import get_logger, setup_logging

# Global engine instance
engine: HubSyncEngine | None = None
logger = get_logger(__name__)


# Pydantic models for API
class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    engine_initialized: bool
    vault_backend: str | None = None
    mode: str | None = None


class StatusResponse(BaseModel):
    """Sync mode and suffix state."""

    mode: str
    live_sync: bool
    suppressed_until_rebuild: bool
    suffix: str
    previous_suffix: str
    migration_pending: bool


class HubPathsResponse(BaseModel):
    """Hub documents a file browser should hide."""

    paths: list[str]
    hide_in_explorer: bool


class SelectAllOffsetResponse(BaseModel):
    """Leading lines a select-all in an editor should skip."""

    path: str
    line_count: int


class SettingsUpdate(BaseModel):
    """Partial hub settings update; omitted fields keep their value."""

    suffix: str | None = Field(default=None, description="New hub suffix (starts a migration)")
    heading: str | None = None
    excluded_names: list[str] | None = None
    exclude_hidden: bool | None = None
    parent_link: bool | None = None
    auto_hide_links: bool | None = None
    blank_line_before_link: bool | None = None
    separator_after_link: bool | None = None
    hide_hubs_in_explorer: bool | None = None
    live_sync: bool | None = None


def _require_engine() -> HubSyncEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global engine

    # Load configuration from YAML and environment, env vars win
    config = Config.from_env_or_yaml(yaml_path=os.getenv("HUBSYNC_CONFIG", "config.yaml"))

    # Initialize logging with config
    setup_logging(config.logging)

    logger.info("Starting HubSync server")
    logger.info(
        f"Configuration: backend={config.vault.backend}, root={config.vault.root}, "
        f"watch={config.vault.watch}"
    )

    engine = HubSyncEngine.from_config(config)
    app.state.vault_backend = config.vault.backend

    await engine.start()
    logger.info("HubSync engine initialized")

    yield

    # Cleanup
    logger.info("Shutting down HubSync server")
    await engine.stop()
    engine = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="HubSync API",
    description="Keeps folder hub notes and note links in sync with a vault",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if engine else "initializing",
        engine_initialized=engine is not None,
        vault_backend=getattr(app.state, "vault_backend", None),
        mode=engine.mode.value if engine else None,
    )


@app.get("/status", response_model=StatusResponse)
async def get_status():
    """Current sync mode and suffix migration state."""
    current = _require_engine()
    settings = current.settings
    return StatusResponse(
        mode=current.mode.value,
        live_sync=settings.live_sync,
        suppressed_until_rebuild=settings.suppressed_until_rebuild,
        suffix=settings.suffix,
        previous_suffix=settings.previous_suffix,
        migration_pending=settings.migration_pending,
    )


# Command endpoints
@app.post("/commands/rebuild-hubs", response_model=CommandResult)
async def rebuild_hubs():
    """
    Create, rename and refresh every hub.

    Migrates hubs away from the previous suffix and clears suppression.
    """
    return await _require_engine().rebuild_hubs()


@app.post("/commands/rebuild-links", response_model=CommandResult)
async def rebuild_links():
    """Rewrite the hub link block of every note and complete a suffix migration."""
    return await _require_engine().rebuild_links()


@app.post("/commands/remove-hubs", response_model=CommandResult)
async def remove_hubs():
    """Trash every hub and suppress live sync until the next rebuild."""
    return await _require_engine().remove_all_hubs()


@app.post("/commands/remove-links", response_model=CommandResult)
async def remove_links():
    """Strip every hub link block and suppress live sync until the next rebuild."""
    return await _require_engine().remove_all_links()


@app.post("/commands/unhide", response_model=CommandResult)
async def unhide_links():
    """Unwrap hidden hub links in every note."""
    return await _require_engine().unhide_all()


# Presentation endpoints
@app.get("/hubs", response_model=HubPathsResponse)
async def get_hub_paths():
    """Paths of every hub document."""
    current = _require_engine()
    try:
        paths = await current.hub_paths()
    except Exception as e:
        logger.error(f"Error listing hubs: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return HubPathsResponse(paths=paths, hide_in_explorer=current.settings.hide_hubs_in_explorer)


@app.get("/directory", response_model=DirectoryListing)
async def get_directory(
    folder: str = Query(default="", description="Vault-relative folder path"),
    source: str | None = Query(default=None, description="Document rendering the block"),
):
    """Entries for a folder's directory block."""
    current = _require_engine()
    try:
        listing = await current.directory_listing(folder, source_path=source)
    except Exception as e:
        logger.error(f"Error listing directory {folder!r}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    if folder.strip("/") and listing.is_empty:
        snapshot = await current.vault.snapshot()
        if snapshot.folder(folder) is None:
            raise HTTPException(status_code=404, detail=f"Folder {folder} not found")
    return listing


@app.get("/select-all-offset", response_model=SelectAllOffsetResponse)
async def get_select_all_offset(path: str = Query(..., description="Vault-relative note path")):
    """Number of leading lines that hold the note's hub link block."""
    current = _require_engine()
    try:
        line_count = await current.select_all_exclude_line_count(path)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Error counting link lines for {path!r}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return SelectAllOffsetResponse(path=path, line_count=line_count)


# Settings endpoints
@app.get("/settings", response_model=HubSettings)
async def get_settings():
    """Current hub settings."""
    return _require_engine().settings


@app.patch("/settings", response_model=HubSettings)
async def update_settings(request: SettingsUpdate):
    """
    Update some hub settings.

    Changing the suffix keeps the old one as previous_suffix; hubs and links
    migrate on the next rebuild.
    """
    current = _require_engine()
    changes = request.model_dump(exclude_none=True)
    try:
        return await current.update_settings(**changes)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Error updating settings: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/settings/reset", response_model=HubSettings)
async def reset_settings():
    """Restore default hub settings."""
    current = _require_engine()
    try:
        return await current.reset_settings()
    except Exception as e:
        logger.error(f"Error resetting settings: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "HubSync API",
        "version": "1.0.0",
        "description": "Keeps folder hub notes and note links in sync with a vault",
        "docs": "/docs",
        "health": "/health",
    }

