"""Timer-driven auto-advance scheduling."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

import structlog

from ..scenes.scenes_models import Scene
from .player_models import PlayerState, clamp_transition_ms

logger = structlog.get_logger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _loop_call_later(delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay_seconds, callback)


def should_arm(state: PlayerState, current_scene: Scene | None) -> bool:
    """Whether auto-advance applies to ``state`` showing ``current_scene``.

    A full-length video advances on the display's ``NEXT_SCENE`` instead. An
    id that no longer resolves to a scene still arms the timer; the next
    advance then falls back to the first eligible scene.
    """
    if not state.is_playing or state.current_scene_id is None:
        return False
    if current_scene is not None and current_scene.is_video and state.play_videos_full_length:
        return False
    return True


class RotationScheduler:
    """Own at most one pending one-shot timer.

    ``handle`` is either ``None`` or the cancellable of the single pending
    timer. Every :meth:`reschedule` cancels it first, so timers never stack.
    The fire callback is expected to apply the timer transition, which calls
    :meth:`reschedule` again.
    """

    def __init__(
        self,
        *,
        on_fire: Callable[[], None] | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.on_fire = on_fire
        self._timer_factory = timer_factory or _loop_call_later
        self.handle: TimerHandle | None = None
        self.delay_ms: int | None = None

    @property
    def armed(self) -> bool:
        return self.handle is not None

    def cancel(self) -> None:
        handle, self.handle = self.handle, None
        self.delay_ms = None
        if handle is not None:
            handle.cancel()

    def reschedule(self, state: PlayerState, current_scene: Scene | None) -> int | None:
        """Re-evaluate the arm predicate; returns the armed delay in ms."""
        self.cancel()
        if not should_arm(state, current_scene):
            return None

        delay_ms = clamp_transition_ms(state.transition_ms)
        self.delay_ms = delay_ms
        self.handle = self._timer_factory(delay_ms / 1000.0, self._fire)
        logger.debug(
            "player.rotation.armed",
            delay_ms=delay_ms,
            scene_id=state.current_scene_id,
        )
        return delay_ms

    def _fire(self) -> None:
        self.handle = None
        self.delay_ms = None
        if self.on_fire is None:
            return
        try:
            self.on_fire()
        except Exception:
            logger.exception("player.rotation.fire_failed")


__all__ = ["RotationScheduler", "TimerFactory", "TimerHandle", "should_arm"]
