"""Websocket endpoint and player state routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, WebSocket

from .player_schemas import PlayerStateResponse
from .player_service import PlaybackStateStore
from .sync_server import SyncServer

router = APIRouter(tags=["player"])


def get_sync_server(websocket: WebSocket) -> SyncServer:
    """Fetch the sync server from application state."""
    try:
        return websocket.app.state.sync_server  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("SyncServer is not configured") from exc


def get_state_store(request: Request) -> PlaybackStateStore:
    try:
        return request.app.state.state_store  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("PlaybackStateStore is not configured") from exc


@router.websocket("/ws")
async def player_socket(
    websocket: WebSocket,
    server: SyncServer = Depends(get_sync_server),
) -> None:
    await server.serve(websocket)


@router.get("/api/state", response_model=PlayerStateResponse, response_model_by_alias=True)
def read_state(store: PlaybackStateStore = Depends(get_state_store)) -> PlayerStateResponse:
    return PlayerStateResponse.from_state(store.state)
