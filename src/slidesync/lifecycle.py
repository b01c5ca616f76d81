"""Lifecycle helpers wiring background work into FastAPI startup/shutdown."""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator

import structlog
from fastapi import FastAPI

from .config import AppConfig
from .media.derivation_queue import DerivationQueue
from .player.player_service import PlaybackStateStore
from .player.sync_server import SyncServer
from .scenes.scenes_service import SceneCatalog

logger = structlog.get_logger(__name__)


async def startup(app: FastAPI) -> None:
    """Start the derivation worker, reconcile the catalog and resume playback."""
    config: AppConfig = app.state.config
    derivation_queue: DerivationQueue = app.state.derivation_queue
    catalog: SceneCatalog = app.state.catalog
    state_store: PlaybackStateStore = app.state.state_store

    config.media_paths.ensure()
    derivation_queue.start()
    if config.reconcile_on_startup:
        try:
            await catalog.reconcile()
        except OSError:
            logger.exception("lifecycle.reconcile.failed", media_root=str(config.media_root))
    else:
        logger.info("lifecycle.reconcile.skipped")
    state_store.start()


async def shutdown(app: FastAPI) -> None:
    sync_server: SyncServer = app.state.sync_server
    derivation_queue: DerivationQueue = app.state.derivation_queue
    sync_server.close()
    await derivation_queue.stop()
    logger.info("lifecycle.stopped")


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await startup(app)
    try:
        yield
    finally:
        await shutdown(app)


__all__ = ["lifespan", "shutdown", "startup"]
