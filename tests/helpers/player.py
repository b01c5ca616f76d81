"""Test doubles shared by player and scene tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.slidesync.config import MediaPaths
from src.slidesync.player.player_models import PlayerState, UpdateReason
from src.slidesync.scenes.scenes_repository import SceneRepository
from src.slidesync.scenes.scenes_service import SceneCatalog


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimerFactory:
    """Collects timers instead of scheduling them on an event loop."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    def fire(self) -> None:
        (timer,) = self.active
        timer.fired = True
        timer.callback()


class RecordingBroadcaster:
    def __init__(self) -> None:
        self.states: list[tuple[PlayerState, UpdateReason]] = []
        self.infos: list[str] = []

    def broadcast_state(self, state: PlayerState, reason: UpdateReason) -> int:
        self.states.append((state.copy(), reason))
        return 1

    def send_info(self, message: str) -> int:
        self.infos.append(message)
        return 1

    @property
    def reasons(self) -> list[str]:
        return [reason.value for _, reason in self.states]


def scene_record(scene_id: int, filename: str, **extra: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": scene_id,
        "filename": filename,
        "title": filename,
        "description": "",
        "type": "video" if filename.endswith(".mp4") else "image",
        "visible": True,
    }
    record.update(extra)
    return record


def build_catalog(
    tmp_path: Path,
    paths: MediaPaths,
    records: list[dict[str, Any]],
    *,
    touch_files: bool = True,
) -> SceneCatalog:
    scenes_file = tmp_path / "data" / "scenes.json"
    scenes_file.parent.mkdir(parents=True, exist_ok=True)
    scenes_file.write_text(json.dumps(records), encoding="utf-8")
    if touch_files:
        for record in records:
            (paths.images / record["filename"]).write_bytes(b"media")
    return SceneCatalog(repository=SceneRepository(scenes_file), paths=paths)
