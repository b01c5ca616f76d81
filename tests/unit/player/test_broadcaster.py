import asyncio
import json

import pytest
from starlette.websockets import WebSocketState

from src.slidesync.player.broadcaster import Broadcaster, ClientConnection
from src.slidesync.player.player_models import PlayerState, UpdateReason


class DummyWebSocket:
    def __init__(self, *, connected: bool = True) -> None:
        state = WebSocketState.CONNECTED if connected else WebSocketState.DISCONNECTED
        self.client_state = state
        self.application_state = state
        self.sent: list[str] = []

    async def send_text(self, text: str) -> None:
        self.sent.append(text)


async def _drain(predicate) -> None:
    for _ in range(100):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_broadcast_skips_closed_connections() -> None:
    broadcaster = Broadcaster()
    live_socket = DummyWebSocket()
    closed_socket = DummyWebSocket(connected=False)
    live = ClientConnection(live_socket)
    closed = ClientConnection(closed_socket)
    for connection in (live, closed):
        connection.start()
        broadcaster.register(connection)

    delivered = broadcaster.broadcast_state(PlayerState(current_scene_id=1), UpdateReason.MANUAL)

    assert delivered == 1
    await _drain(lambda: len(live_socket.sent) == 1)
    assert closed_socket.sent == []
    frame = json.loads(live_socket.sent[0])
    assert frame["type"] == "STATE_UPDATE"
    assert frame["meta"] == {"reason": "manual"}
    assert frame["payload"]["currentSceneId"] == 1

    for connection in (live, closed):
        await connection.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_frames_arrive_in_enqueue_order() -> None:
    broadcaster = Broadcaster()
    socket = DummyWebSocket()
    connection = ClientConnection(socket)
    connection.start()
    broadcaster.register(connection)

    for scene_id in range(1, 6):
        broadcaster.broadcast_state(PlayerState(current_scene_id=scene_id), UpdateReason.TIMER)
    broadcaster.send_info("catalog-changed")

    await _drain(lambda: len(socket.sent) == 6)
    ids = [json.loads(frame)["payload"].get("currentSceneId") for frame in socket.sent[:5]]
    assert ids == [1, 2, 3, 4, 5]
    assert json.loads(socket.sent[-1]) == {
        "type": "INFO",
        "payload": {"message": "catalog-changed"},
    }
    await connection.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unregistered_connection_receives_nothing() -> None:
    broadcaster = Broadcaster()
    socket = DummyWebSocket()
    connection = ClientConnection(socket)
    broadcaster.register(connection)
    broadcaster.unregister(connection)

    assert broadcaster.broadcast_state(PlayerState(), UpdateReason.SYNC) == 0
    assert len(broadcaster) == 0
