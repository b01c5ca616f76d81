import pytest

from src.slidesync.player.player_models import PlayerState, PlayMode
from src.slidesync.player.player_repository import PlayerStateRepository


@pytest.mark.unit
def test_payload_uses_wire_names() -> None:
    state = PlayerState(is_playing=True, current_scene_id=3, scene_started_at=10)

    assert state.to_payload() == {
        "isPlaying": True,
        "currentSceneId": 3,
        "mode": "sequential",
        "transitionMs": 5_000,
        "playVideosFullLength": False,
        "sceneStartedAt": 10,
    }


@pytest.mark.unit
def test_from_payload_drops_invalid_fields() -> None:
    defaults = PlayerState(transition_ms=4_000)

    state = PlayerState.from_payload(
        {
            "isPlaying": "yes",
            "currentSceneId": "7",
            "mode": "random",
            "transitionMs": True,
            "playVideosFullLength": True,
        },
        defaults=defaults,
    )

    assert state.is_playing is False
    assert state.current_scene_id is None
    assert state.mode is PlayMode.RANDOM
    assert state.transition_ms == 4_000
    assert state.play_videos_full_length is True


@pytest.mark.unit
def test_repository_falls_back_to_defaults_on_corrupt_file(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    repository = PlayerStateRepository(path, defaults=PlayerState(transition_ms=3_000))

    state = repository.load()

    assert state == PlayerState(transition_ms=3_000)


@pytest.mark.unit
def test_repository_round_trip(tmp_path) -> None:
    repository = PlayerStateRepository(tmp_path / "state.json")
    state = PlayerState(is_playing=True, current_scene_id=2, mode=PlayMode.RANDOM)

    repository.save(state)

    assert repository.load() == state
    assert not (tmp_path / ".state.json.tmp").exists()
