"""Playback state data models."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

MIN_TRANSITION_MS = 500
MAX_TRANSITION_MS = 10_000
DEFAULT_TRANSITION_MS = 5_000


class PlayMode(str, Enum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"


class UpdateReason(str, Enum):
    """Why a ``STATE_UPDATE`` was sent."""

    MANUAL = "manual"
    TIMER = "timer"
    VIDEO_ENDED = "video-ended"
    SYNC = "sync"


def clamp_transition_ms(value: int | float | None) -> int:
    """Effective auto-advance delay for a requested ``transitionMs``."""
    if value is None:
        value = DEFAULT_TRANSITION_MS
    return int(min(MAX_TRANSITION_MS, max(MIN_TRANSITION_MS, value)))


@dataclass(slots=True)
class PlayerState:
    """The single global playback record."""

    is_playing: bool = False
    current_scene_id: int | None = None
    mode: PlayMode = PlayMode.SEQUENTIAL
    transition_ms: int = DEFAULT_TRANSITION_MS
    play_videos_full_length: bool = False
    scene_started_at: int | None = None

    def copy(self, **changes: Any) -> "PlayerState":
        return replace(self, **changes)

    def to_payload(self) -> dict[str, Any]:
        return {
            "isPlaying": self.is_playing,
            "currentSceneId": self.current_scene_id,
            "mode": self.mode.value,
            "transitionMs": self.transition_ms,
            "playVideosFullLength": self.play_videos_full_length,
            "sceneStartedAt": self.scene_started_at,
        }

    @classmethod
    def from_payload(cls, raw: Any, *, defaults: "PlayerState | None" = None) -> "PlayerState":
        """Merge a persisted document over ``defaults``, dropping invalid fields."""
        state = (defaults or cls()).copy()
        if not isinstance(raw, dict):
            return state

        if isinstance(raw.get("isPlaying"), bool):
            state.is_playing = raw["isPlaying"]
        scene_id = raw.get("currentSceneId", state.current_scene_id)
        if scene_id is None or (isinstance(scene_id, int) and not isinstance(scene_id, bool)):
            state.current_scene_id = scene_id
        if raw.get("mode") in {mode.value for mode in PlayMode}:
            state.mode = PlayMode(raw["mode"])
        transition = raw.get("transitionMs")
        if isinstance(transition, (int, float)) and not isinstance(transition, bool):
            state.transition_ms = int(transition)
        if isinstance(raw.get("playVideosFullLength"), bool):
            state.play_videos_full_length = raw["playVideosFullLength"]
        started = raw.get("sceneStartedAt", state.scene_started_at)
        if started is None or (isinstance(started, (int, float)) and not isinstance(started, bool)):
            state.scene_started_at = int(started) if started is not None else None
        return state


__all__ = [
    "DEFAULT_TRANSITION_MS",
    "MAX_TRANSITION_MS",
    "MIN_TRANSITION_MS",
    "PlayMode",
    "PlayerState",
    "UpdateReason",
    "clamp_transition_ms",
]
