"""Repository persisting the scene catalog as ``scenes.json``."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ..infrastructure import JsonDocument
from .scenes_models import Scene

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class SceneRepository:
    """Load/save the full scene list; the document is the catalog's only index."""

    path: Path
    _document: JsonDocument = field(init=False)

    def __post_init__(self) -> None:
        self._document = JsonDocument(self.path, name="scenes")

    def load(self) -> list[Scene]:
        """Return persisted scenes, or an empty list on a missing/malformed file."""
        raw = self._document.read(default=[])
        if not isinstance(raw, list):
            logger.warning("scenes.load.invalid_structure", path=str(self.path))
            return []

        scenes: list[Scene] = []
        seen_ids: set[int] = set()
        seen_filenames: set[str] = set()
        for entry in raw:
            scene = Scene.from_dict(entry)
            if scene is None:
                logger.warning("scenes.load.skipped_record", record=repr(entry)[:200])
                continue
            if scene.id in seen_ids or scene.filename in seen_filenames:
                logger.warning(
                    "scenes.load.duplicate_record",
                    scene_id=scene.id,
                    filename=scene.filename,
                )
                continue
            seen_ids.add(scene.id)
            seen_filenames.add(scene.filename)
            scenes.append(scene)
        return scenes

    def save(self, scenes: list[Scene]) -> None:
        self._document.save([scene.to_dict() for scene in scenes])


__all__ = ["SceneRepository"]
