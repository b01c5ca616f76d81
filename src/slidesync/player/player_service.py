"""Authoritative playback state machine."""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from typing import Any

import structlog
from pydantic import ValidationError

from ..scenes.scenes_models import CatalogEvent, CatalogEventKind, Scene
from ..scenes.scenes_service import SceneCatalog
from .broadcaster import Broadcaster
from .player_models import PlayerState, PlayMode, UpdateReason
from .player_repository import PlayerStateRepository
from .player_schemas import PlayerStatePatch, encode_state_update
from .rotation import RotationScheduler

logger = structlog.get_logger(__name__)

Clock = Callable[[], int]

_UNSET: Any = object()


def _now_ms() -> int:
    return int(time.time() * 1000)


class PlaybackStateStore:
    """Own the single ``PlayerState`` and every transition applied to it.

    Transitions are plain synchronous methods: each one replaces the record,
    persists it, enqueues a broadcast and re-evaluates the rotation timer
    before returning, so transitions are serialized by the event loop.
    Invalid requests return ``False``/``None`` and leave everything untouched.
    """

    def __init__(
        self,
        *,
        catalog: SceneCatalog,
        repository: PlayerStateRepository,
        broadcaster: Broadcaster,
        scheduler: RotationScheduler | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._repository = repository
        self._broadcaster = broadcaster
        self._clock = clock or _now_ms
        self._rng = rng or random.Random()
        self._state = repository.load()
        self.scheduler = scheduler or RotationScheduler()
        self.scheduler.on_fire = self.on_timer

    @property
    def state(self) -> PlayerState:
        return self._state.copy()

    def current_scene(self) -> Scene | None:
        if self._state.current_scene_id is None:
            return None
        return self._catalog.get(self._state.current_scene_id)

    def start(self) -> None:
        """Resume after process start: pick a scene if none is set and re-arm."""
        state = self._state
        if state.current_scene_id is None:
            candidates = self._catalog.eligible_scenes() or self._catalog.list_scenes()
            if candidates:
                state = state.copy(current_scene_id=candidates[0].id)
        started_at = self._clock() if state.current_scene_id is not None else None
        self._state = state.copy(scene_started_at=started_at)
        self._repository.save(self._state)
        self._reschedule()
        logger.info("player.started", **self._state.to_payload())

    def stop(self) -> None:
        self.scheduler.cancel()

    def sync_message(self) -> str:
        """Frame greeting a newly connected client with the current state."""
        return encode_state_update(self._state, UpdateReason.SYNC)

    def apply_patch(self, patch: PlayerStatePatch | dict[str, Any]) -> bool:
        """Handle a ``SET_STATE`` request."""
        if isinstance(patch, dict):
            try:
                patch = PlayerStatePatch.model_validate(patch)
            except ValidationError as exc:
                logger.warning("player.patch.invalid", errors=exc.error_count())
                return False
        fields = patch.changes()

        target = fields.pop("current_scene_id", _UNSET)
        if target is not _UNSET and target is not None and self._catalog.get(target) is None:
            logger.warning("player.patch.unknown_scene", scene_id=target)
            return False

        previous = self._state
        if "mode" in fields:
            fields["mode"] = PlayMode(fields["mode"])
        self._state = previous.copy(**fields)

        if target is not _UNSET and target != self._state.current_scene_id:
            self.set_current_scene(target, UpdateReason.MANUAL)
            return True

        if (
            not previous.is_playing
            and self._state.is_playing
            and self._state.current_scene_id is not None
        ):
            self._state = self._state.copy(scene_started_at=self._clock())
        self._commit(UpdateReason.MANUAL)
        return True

    def jump_to_scene(self, scene_id: int) -> bool:
        """Handle a ``SET_SCENE`` request."""
        if self._catalog.get(scene_id) is None:
            logger.warning("player.jump.unknown_scene", scene_id=scene_id)
            return False
        self.set_current_scene(scene_id, UpdateReason.MANUAL)
        return True

    def advance(self, reason: UpdateReason = UpdateReason.VIDEO_ENDED) -> Scene | None:
        """Handle a ``NEXT_SCENE`` request; no-op when nothing is eligible."""
        scene = self.compute_next_scene()
        if scene is None:
            return None
        self.set_current_scene(scene.id, reason)
        return scene

    def on_timer(self) -> None:
        scene = self.compute_next_scene()
        if scene is not None:
            self.set_current_scene(scene.id, UpdateReason.TIMER)
        else:
            self._reschedule()

    def set_current_scene(self, scene_id: int | None, reason: UpdateReason = UpdateReason.MANUAL) -> None:
        self._state = self._state.copy(
            current_scene_id=scene_id,
            scene_started_at=self._clock() if scene_id is not None else None,
        )
        self._commit(reason)

    def compute_next_scene(self) -> Scene | None:
        """Rotation policy shared by manual and timer-driven advancing."""
        eligible = self._catalog.eligible_scenes()
        if not eligible:
            return None

        current_index = next(
            (
                index
                for index, scene in enumerate(eligible)
                if scene.id == self._state.current_scene_id
            ),
            -1,
        )

        if self._state.mode is PlayMode.RANDOM:
            if len(eligible) == 1:
                return eligible[0]
            index = current_index
            while index == current_index or index == -1:
                index = self._rng.randrange(len(eligible))
            return eligible[index]

        if current_index == -1:
            return eligible[0]
        return eligible[(current_index + 1) % len(eligible)]

    def handle_catalog_event(self, event: CatalogEvent) -> None:
        """React to catalog changes that affect playback.

        An emptied catalog resets playback. A newly available scene becomes
        current when nothing is selected. Removing the current scene leaves
        its id in place until the next advance, but the timer is re-evaluated
        since a full-length video can no longer signal its end.
        """
        if len(self._catalog) == 0:
            if self._state.current_scene_id is not None or self._state.is_playing:
                self._state = self._state.copy(
                    current_scene_id=None, scene_started_at=None, is_playing=False
                )
                self.scheduler.cancel()
                self._repository.save(self._state)
                self._broadcaster.broadcast_state(self._state, UpdateReason.MANUAL)
                logger.info("player.reset.catalog_empty")
            return

        if self._state.current_scene_id is None and event.kind in (
            CatalogEventKind.ADDED,
            CatalogEventKind.RECONCILED,
        ):
            candidate = event.scene
            if candidate is None or self._catalog.get(candidate.id) is None:
                eligible = self._catalog.eligible_scenes() or self._catalog.list_scenes()
                candidate = eligible[0]
            self.set_current_scene(candidate.id, UpdateReason.MANUAL)
            return

        if self._state.current_scene_id is not None and self.current_scene() is None:
            self._reschedule()

    def _commit(self, reason: UpdateReason) -> None:
        self._repository.save(self._state)
        self._broadcaster.broadcast_state(self._state, reason)
        self._reschedule()
        logger.debug("player.transition", reason=reason.value, **self._state.to_payload())

    def _reschedule(self) -> None:
        self.scheduler.reschedule(self._state, self.current_scene())


__all__ = ["PlaybackStateStore"]
