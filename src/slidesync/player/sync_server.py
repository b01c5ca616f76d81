"""Facade wiring websocket clients, the state store and the catalog together."""

from __future__ import annotations

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from ..exceptions import InvalidMessageError
from ..media.media_service import MediaDerivationPipeline
from ..media.upload_store import StoredUpload
from ..scenes.scenes_models import CatalogEvent, Scene
from ..scenes.scenes_service import SceneCatalog
from .broadcaster import Broadcaster, ClientConnection
from .player_models import UpdateReason
from .player_schemas import (
    CATALOG_CHANGED,
    NextSceneMessage,
    SetSceneMessage,
    SetStateMessage,
    parse_client_message,
)
from .player_service import PlaybackStateStore

logger = structlog.get_logger(__name__)


class SyncServer:
    """Route client messages to transitions and catalog changes to clients."""

    def __init__(
        self,
        *,
        store: PlaybackStateStore,
        catalog: SceneCatalog,
        broadcaster: Broadcaster,
        pipeline: MediaDerivationPipeline,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.broadcaster = broadcaster
        self.pipeline = pipeline
        self._unsubscribe = catalog.subscribe(self._on_catalog_event)

    def close(self) -> None:
        self._unsubscribe()
        self.store.stop()

    async def serve(self, websocket: WebSocket) -> None:
        """Run one websocket session until the client disconnects."""
        await websocket.accept()
        connection = ClientConnection(websocket)
        connection.start()
        self.broadcaster.register(connection)
        connection.enqueue(self.store.sync_message())
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None and frame.get("bytes") is not None:
                    raw = frame["bytes"]
                if raw is None:
                    continue
                self.handle_message(raw)
        except WebSocketDisconnect:
            pass
        finally:
            self.broadcaster.unregister(connection)
            await connection.close()

    def handle_message(self, raw: str | bytes) -> bool:
        """Apply one client frame; returns whether a transition happened."""
        try:
            message = parse_client_message(raw)
        except InvalidMessageError as exc:
            logger.warning("player.ws.invalid_message", error=str(exc))
            return False

        logger.info("player.ws.message", type=message.type)
        if isinstance(message, SetStateMessage):
            return self.store.apply_patch(message.payload)
        if isinstance(message, SetSceneMessage):
            return self.store.jump_to_scene(message.payload.scene_id)
        if isinstance(message, NextSceneMessage):
            return self.store.advance(UpdateReason.VIDEO_ENDED) is not None
        return False

    async def register_upload(self, upload: StoredUpload) -> Scene:
        """Register a freshly stored upload and title it after the client file."""
        scene = await self.catalog.add_scene_from_filename(upload.filename)
        if not scene.title or scene.title == scene.filename:
            updated = self.catalog.update_scene(scene.id, {"title": upload.original_name})
            if updated is not None:
                scene = updated
        return scene

    def delete_scene(self, scene_id: int) -> Scene | None:
        """Remove a scene together with its source file and derived artifacts."""
        removed = self.catalog.remove_scene(scene_id)
        if removed is None:
            return None
        source = self.pipeline.source_path(removed.filename)
        if source.is_file():
            source.unlink()
        self.pipeline.remove_artifacts(removed)
        return removed

    def _on_catalog_event(self, event: CatalogEvent) -> None:
        self.store.handle_catalog_event(event)
        self.broadcaster.send_info(CATALOG_CHANGED)


__all__ = ["SyncServer"]
