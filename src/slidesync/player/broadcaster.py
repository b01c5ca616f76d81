"""Fan-out of state updates to every connected websocket."""

from __future__ import annotations

import asyncio
import contextlib
import uuid

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from .player_models import PlayerState, UpdateReason
from .player_schemas import encode_info, encode_state_update

logger = structlog.get_logger(__name__)


class ClientConnection:
    """One websocket with an outbound queue drained by its own writer task.

    Frames are enqueued synchronously, so the order in which transitions call
    :meth:`enqueue` is the order the client receives them.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.id = uuid.uuid4().hex[:8]
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None

    @property
    def open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def enqueue(self, frame: str) -> bool:
        if not self.open:
            return False
        self._outbox.put_nowait(frame)
        return True

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(
                self._drain(), name=f"slidesync-ws-writer-{self.id}"
            )

    async def close(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer

    async def _drain(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                await self.websocket.send_text(frame)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.debug("player.ws.send_failed", connection=self.id, error=str(exc))
                return


class Broadcaster:
    """Deliver frames to all open connections; closed ones are skipped."""

    def __init__(self) -> None:
        self._connections: dict[str, ClientConnection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def register(self, connection: ClientConnection) -> None:
        self._connections[connection.id] = connection
        logger.info("player.ws.connected", connection=connection.id, clients=len(self))

    def unregister(self, connection: ClientConnection) -> None:
        if self._connections.pop(connection.id, None) is not None:
            logger.info("player.ws.disconnected", connection=connection.id, clients=len(self))

    def broadcast_state(self, state: PlayerState, reason: UpdateReason) -> int:
        return self._fan_out(encode_state_update(state, reason))

    def send_info(self, message: str) -> int:
        return self._fan_out(encode_info(message))

    def _fan_out(self, frame: str) -> int:
        delivered = 0
        for connection in list(self._connections.values()):
            if connection.enqueue(frame):
                delivered += 1
        return delivered


__all__ = ["Broadcaster", "ClientConnection"]
