"""Scene data models."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import PurePath
from typing import Any

VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".m4v", ".webm"})


class SceneType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


def infer_scene_type(filename: str) -> SceneType:
    """Classify a file by extension; anything not a known video is an image."""
    if PurePath(filename).suffix.lower() in VIDEO_EXTENSIONS:
        return SceneType.VIDEO
    return SceneType.IMAGE


@dataclass(slots=True)
class Scene:
    """One playable media item backed by a file in the media directory."""

    id: int
    filename: str
    title: str
    description: str = ""
    type: SceneType = SceneType.IMAGE
    visible: bool = True
    thumbnail_url: str | None = None
    optimized_url: str | None = None

    @property
    def is_video(self) -> bool:
        return self.type is SceneType.VIDEO

    @property
    def base_name(self) -> str:
        return PurePath(self.filename).stem

    def copy(self, **changes: Any) -> "Scene":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "filename": self.filename,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "visible": self.visible,
        }
        if self.thumbnail_url is not None:
            data["thumbnailUrl"] = self.thumbnail_url
        if self.optimized_url is not None:
            data["optimizedUrl"] = self.optimized_url
        return data

    @classmethod
    def from_dict(cls, raw: Any) -> "Scene | None":
        """Build a scene from a persisted record, or ``None`` if unusable.

        Missing optional fields fall back to their defaults; records without a
        positive id or a filename are dropped.
        """
        if not isinstance(raw, dict):
            return None
        try:
            scene_id = int(raw.get("id") or 0)
        except (TypeError, ValueError):
            return None
        filename = raw.get("filename")
        if scene_id <= 0 or not isinstance(filename, str) or not filename:
            return None

        title = raw.get("title")
        description = raw.get("description")
        visible = raw.get("visible")
        thumbnail_url = raw.get("thumbnailUrl")
        optimized_url = raw.get("optimizedUrl")
        return cls(
            id=scene_id,
            filename=filename,
            title=title if isinstance(title, str) else filename,
            description=description if isinstance(description, str) else "",
            type=SceneType.VIDEO if raw.get("type") == "video" else SceneType.IMAGE,
            visible=visible if isinstance(visible, bool) else True,
            thumbnail_url=thumbnail_url if isinstance(thumbnail_url, str) else None,
            optimized_url=optimized_url if isinstance(optimized_url, str) else None,
        )


@dataclass(slots=True)
class CatalogDiff:
    """Outcome of a reconciliation pass."""

    added: list[Scene]
    removed: list[Scene]
    derived: list[Scene]

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed or self.derived)


class CatalogEventKind(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    RECONCILED = "reconciled"


@dataclass(slots=True)
class CatalogEvent:
    kind: CatalogEventKind
    scene: Scene | None = None
    diff: CatalogDiff | None = None
