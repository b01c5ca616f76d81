"""Scene catalog kept consistent with the media directory."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol

import structlog

from ..config import MediaPaths
from ..exceptions import NotFoundError
from .scenes_models import (
    CatalogDiff,
    CatalogEvent,
    CatalogEventKind,
    Scene,
    infer_scene_type,
)
from .scenes_repository import SceneRepository

logger = structlog.get_logger(__name__)

CatalogListener = Callable[[CatalogEvent], None]

MUTABLE_FIELDS = frozenset(
    {"title", "description", "visible", "thumbnail_url", "optimized_url"}
)
_FIELD_ALIASES = {"thumbnailUrl": "thumbnail_url", "optimizedUrl": "optimized_url"}


class ArtifactsResult(Protocol):
    thumbnail_url: str | None
    optimized_url: str | None


Deriver = Callable[[Scene], Awaitable[ArtifactsResult]]


class SceneCatalog:
    """In-memory scene list backed by ``scenes.json`` and the media directory.

    Ids come from a high-water mark that only grows while the catalog lives,
    so an id freed by a deletion is never handed out again. Catalog order is
    insertion order and doubles as the sequential rotation order. Every
    mutation is persisted before the call returns.
    """

    def __init__(
        self,
        *,
        repository: SceneRepository,
        paths: MediaPaths,
        deriver: Deriver | None = None,
    ) -> None:
        self._repository = repository
        self._paths = paths
        self._deriver = deriver
        self._scenes: list[Scene] = repository.load()
        self._last_id = max((scene.id for scene in self._scenes), default=0)
        self._listeners: list[CatalogListener] = []

    def __len__(self) -> int:
        return len(self._scenes)

    @property
    def paths(self) -> MediaPaths:
        return self._paths

    def list_scenes(self) -> list[Scene]:
        return [scene.copy() for scene in self._scenes]

    def get(self, scene_id: int) -> Scene | None:
        scene = self._find(scene_id)
        return scene.copy() if scene is not None else None

    def find_by_filename(self, filename: str) -> Scene | None:
        for scene in self._scenes:
            if scene.filename == filename:
                return scene.copy()
        return None

    def eligible_scenes(self) -> list[Scene]:
        """Scenes taking part in automatic rotation, in catalog order."""
        return [scene.copy() for scene in self._scenes if scene.visible is not False]

    def subscribe(self, listener: CatalogListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def scan_media_directory(self) -> list[str]:
        """Regular, non-hidden files directly inside the media directory."""
        directory = self._paths.images
        if not directory.is_dir():
            return []
        return sorted(
            entry.name
            for entry in directory.iterdir()
            if not entry.name.startswith(".") and entry.is_file()
        )

    async def reconcile(self) -> CatalogDiff:
        """Align the catalog with the files on disk and derive missing artifacts."""
        files = self.scan_media_directory()
        on_disk = set(files)

        removed = [scene for scene in self._scenes if scene.filename not in on_disk]
        self._scenes = [scene for scene in self._scenes if scene.filename in on_disk]

        known = {scene.filename for scene in self._scenes}
        added: list[Scene] = []
        for filename in files:
            if filename in known:
                continue
            scene = self._create_scene(filename)
            self._scenes.append(scene)
            known.add(filename)
            added.append(scene)

        if added or removed:
            self._persist()
        for scene in removed:
            logger.info("scenes.reconcile.removed", scene_id=scene.id, filename=scene.filename)
        for scene in added:
            logger.info("scenes.reconcile.added", scene_id=scene.id, filename=scene.filename)

        added_ids = {scene.id for scene in added}
        derived: list[Scene] = []
        for scene in list(self._scenes):
            if scene.id not in added_ids and not self.needs_derivation(scene):
                continue
            before = (scene.thumbnail_url, scene.optimized_url)
            updated = await self.ensure_derived(scene)
            if (updated.thumbnail_url, updated.optimized_url) != before:
                derived.append(updated)

        self._persist()
        diff = CatalogDiff(
            added=[scene.copy() for scene in added],
            removed=[scene.copy() for scene in removed],
            derived=derived,
        )
        logger.info(
            "scenes.reconcile.done",
            total=len(self._scenes),
            added=len(diff.added),
            removed=len(diff.removed),
            derived=len(diff.derived),
        )
        if diff.changed:
            self._notify(CatalogEvent(kind=CatalogEventKind.RECONCILED, diff=diff))
        return diff

    async def add_scene_from_filename(self, filename: str) -> Scene:
        """Register a file already present in the media directory.

        Idempotent: a known filename returns the existing scene unchanged.
        """
        existing = self.find_by_filename(filename)
        if existing is not None:
            return existing

        if Path(filename).name != filename or filename.startswith("."):
            raise ValueError(f"invalid media filename: {filename!r}")
        if not (self._paths.images / filename).is_file():
            raise NotFoundError(f"media file '{filename}' not found")

        scene = self._create_scene(filename)
        self._scenes.append(scene)
        self._persist()
        logger.info("scenes.added", scene_id=scene.id, filename=filename, type=scene.type.value)

        scene = await self.ensure_derived(scene)
        self._notify(CatalogEvent(kind=CatalogEventKind.ADDED, scene=scene.copy()))
        return scene

    def remove_scene(self, scene_id: int) -> Scene | None:
        for index, scene in enumerate(self._scenes):
            if scene.id == scene_id:
                removed = self._scenes.pop(index)
                self._persist()
                logger.info("scenes.removed", scene_id=scene_id, filename=removed.filename)
                self._notify(CatalogEvent(kind=CatalogEventKind.REMOVED, scene=removed.copy()))
                return removed.copy()
        return None

    def update_scene(self, scene_id: int, fields: dict[str, Any]) -> Scene | None:
        """Apply edits to the mutable fields of a scene.

        ``id``, ``filename`` and ``type`` are fixed for the scene's lifetime and
        are ignored here, as is any unknown key.
        """
        scene = self._find(scene_id)
        if scene is None:
            return None

        changes: dict[str, Any] = {}
        for key, value in fields.items():
            name = _FIELD_ALIASES.get(key, key)
            if name not in MUTABLE_FIELDS:
                logger.debug("scenes.update.ignored_field", scene_id=scene_id, field=key)
                continue
            if name == "visible" and not isinstance(value, bool):
                raise ValueError("visible must be a boolean")
            if name in ("title", "description") and not isinstance(value, str):
                raise ValueError(f"{name} must be a string")
            if name in ("thumbnail_url", "optimized_url") and not (
                value is None or isinstance(value, str)
            ):
                raise ValueError(f"{name} must be a string or null")
            changes[name] = value

        for name, value in changes.items():
            setattr(scene, name, value)
        self._persist()
        if changes:
            self._notify(CatalogEvent(kind=CatalogEventKind.UPDATED, scene=scene.copy()))
        return scene.copy()

    def needs_derivation(self, scene: Scene) -> bool:
        """True when a derived URL is unset or its artifact vanished from disk."""
        for url in (scene.thumbnail_url, scene.optimized_url):
            if url is None:
                return True
            path = self._paths.path_for_url(url)
            if path is None or not path.is_file():
                return True
        return False

    async def ensure_derived(self, scene: Scene) -> Scene:
        """Run the derivation pipeline for ``scene`` and attach resulting URLs."""
        if self._deriver is None:
            return scene.copy()

        artifacts = await self._deriver(scene.copy())

        # The scene may have been removed while the encoder was running.
        current = self._find(scene.id)
        if current is None or current.filename != scene.filename:
            return scene.copy()

        changes: dict[str, str | None] = {}
        for name, url in (
            ("thumbnail_url", artifacts.thumbnail_url),
            ("optimized_url", artifacts.optimized_url),
        ):
            previous = getattr(current, name)
            if url is not None:
                if url != previous:
                    changes[name] = url
            elif previous is not None and not self._artifact_exists(previous):
                changes[name] = None

        if changes:
            for name, value in changes.items():
                setattr(current, name, value)
            self._persist()
            logger.info("scenes.derived", scene_id=current.id, **changes)
            self._notify(CatalogEvent(kind=CatalogEventKind.UPDATED, scene=current.copy()))
        return current.copy()

    def _artifact_exists(self, url: str) -> bool:
        path = self._paths.path_for_url(url)
        return path is not None and path.is_file()

    def _find(self, scene_id: int) -> Scene | None:
        for scene in self._scenes:
            if scene.id == scene_id:
                return scene
        return None

    def _next_id(self) -> int:
        self._last_id = max(self._last_id, *(scene.id for scene in self._scenes), 0) + 1
        return self._last_id

    def _create_scene(self, filename: str) -> Scene:
        return Scene(
            id=self._next_id(),
            filename=filename,
            title=filename,
            description="",
            type=infer_scene_type(filename),
            visible=True,
        )

    def _persist(self) -> None:
        self._repository.save(self._scenes)

    def _notify(self, event: CatalogEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("scenes.listener.failed", kind=event.kind.value)


__all__ = ["CatalogListener", "Deriver", "MUTABLE_FIELDS", "SceneCatalog"]
