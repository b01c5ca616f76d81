import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.slidesync.main import create_app


def _seed_media(config, *names: str) -> None:
    for name in names:
        Image.new("RGB", (64, 48), (20, 20, 20)).save(config.media_root / name)


def _receive_state(ws) -> dict:
    while True:
        message = ws.receive_json()
        if message["type"] == "STATE_UPDATE":
            return message


@pytest.mark.integration
def test_connect_receives_current_state_with_sync_reason(app_config) -> None:
    _seed_media(app_config, "a.png", "b.png")

    with TestClient(create_app(app_config)) as client:
        with client.websocket_connect("/ws") as ws:
            message = ws.receive_json()

    assert message["type"] == "STATE_UPDATE"
    assert message["meta"] == {"reason": "sync"}
    assert message["payload"]["currentSceneId"] == 1
    assert set(message["payload"]) == {
        "isPlaying",
        "currentSceneId",
        "mode",
        "transitionMs",
        "playVideosFullLength",
        "sceneStartedAt",
    }


@pytest.mark.integration
def test_set_scene_is_broadcast_to_every_client(app_config) -> None:
    _seed_media(app_config, "a.png", "b.png")

    with TestClient(create_app(app_config)) as client:
        with client.websocket_connect("/ws") as control, client.websocket_connect("/ws") as display:
            control.receive_json()
            display.receive_json()

            control.send_json({"type": "SET_SCENE", "payload": {"sceneId": 2}})

            for ws in (control, display):
                message = _receive_state(ws)
                assert message["meta"] == {"reason": "manual"}
                assert message["payload"]["currentSceneId"] == 2


@pytest.mark.integration
def test_invalid_messages_keep_connection_open(app_config) -> None:
    _seed_media(app_config, "a.png", "b.png")

    with TestClient(create_app(app_config)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("this is not json")
            ws.send_json({"type": "SET_SCENE", "payload": {"sceneId": 999}})
            ws.send_json({"type": "NEXT_SCENE"})

            message = _receive_state(ws)

    assert message["meta"] == {"reason": "video-ended"}
    assert message["payload"]["currentSceneId"] == 2


@pytest.mark.integration
def test_set_state_persists_and_is_served_over_http(app_config) -> None:
    _seed_media(app_config, "a.png")

    with TestClient(create_app(app_config)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json(
                {"type": "SET_STATE", "payload": {"mode": "random", "transitionMs": 9000}}
            )
            _receive_state(ws)

        state = client.get("/api/state").json()

    assert state["mode"] == "random"
    assert state["transitionMs"] == 9000
    assert (app_config.data_root / "state.json").exists()
