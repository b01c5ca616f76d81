"""Repository persisting the player state as ``state.json``."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..infrastructure import JsonDocument
from .player_models import PlayerState


@dataclass(slots=True)
class PlayerStateRepository:
    path: Path
    defaults: PlayerState = field(default_factory=PlayerState)
    _document: JsonDocument = field(init=False)

    def __post_init__(self) -> None:
        self._document = JsonDocument(self.path, name="state")

    def load(self) -> PlayerState:
        """Return the persisted state merged over defaults."""
        return PlayerState.from_payload(self._document.read(default=None), defaults=self.defaults)

    def save(self, state: PlayerState) -> None:
        self._document.save(state.to_payload())


__all__ = ["PlayerStateRepository"]
