"""Dependency wiring helpers."""

from __future__ import annotations

from fastapi import FastAPI

from .config import AppConfig
from .media.derivation_queue import DerivationQueue
from .media.media_service import DerivationSettings, MediaDerivationPipeline
from .media.static_media import MediaStaticFiles
from .media.upload_store import UploadStore
from .player.broadcaster import Broadcaster
from .player.player_api import router as player_router
from .player.player_models import PlayerState
from .player.player_repository import PlayerStateRepository
from .player.player_service import PlaybackStateStore
from .player.sync_server import SyncServer
from .scenes.scenes_api import router as scenes_router
from .scenes.scenes_repository import SceneRepository
from .scenes.scenes_service import SceneCatalog


def include_routers(app: FastAPI, config: AppConfig) -> None:
    """Build the service graph, attach it to ``app.state`` and mount routes."""
    paths = config.media_paths
    pipeline = MediaDerivationPipeline(paths, DerivationSettings.from_config(config))
    derivation_queue = DerivationQueue(pipeline)
    catalog = SceneCatalog(
        repository=SceneRepository(config.scenes_file),
        paths=paths,
        deriver=derivation_queue.submit,
    )
    broadcaster = Broadcaster()
    state_store = PlaybackStateStore(
        catalog=catalog,
        repository=PlayerStateRepository(
            config.state_file,
            defaults=PlayerState(transition_ms=config.default_transition_ms),
        ),
        broadcaster=broadcaster,
    )
    sync_server = SyncServer(
        store=state_store,
        catalog=catalog,
        broadcaster=broadcaster,
        pipeline=pipeline,
    )
    upload_store = UploadStore(paths=paths, max_bytes=config.upload_max_bytes)

    app.state.config = config
    app.state.pipeline = pipeline
    app.state.derivation_queue = derivation_queue
    app.state.catalog = catalog
    app.state.broadcaster = broadcaster
    app.state.state_store = state_store
    app.state.sync_server = sync_server
    app.state.upload_store = upload_store

    app.include_router(scenes_router)
    app.include_router(player_router)

    app.mount(
        config.public_prefix.rstrip("/"),
        MediaStaticFiles(
            directory=paths.images,
            check_dir=False,
            artifact_max_age=config.artifact_cache_max_age,
        ),
        name="media",
    )
