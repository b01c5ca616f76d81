"""Pydantic schemas for the scene API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel

from ..config import MediaPaths
from .scenes_models import CatalogDiff, Scene, SceneType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SceneResponse(_CamelModel):
    id: int
    filename: str
    title: str
    description: str
    type: SceneType
    visible: bool
    thumbnail_url: str | None = None
    optimized_url: str | None = None
    url: str

    @classmethod
    def from_scene(cls, scene: Scene, paths: MediaPaths) -> "SceneResponse":
        return cls(
            id=scene.id,
            filename=scene.filename,
            title=scene.title,
            description=scene.description,
            type=scene.type,
            visible=scene.visible,
            thumbnail_url=scene.thumbnail_url,
            optimized_url=scene.optimized_url,
            url=paths.public_url(paths.images / scene.filename),
        )


class SceneUpdateRequest(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=5_000)
    visible: StrictBool | None = None


class CatalogSyncResponse(BaseModel):
    added: list[int]
    removed: list[int]
    derived: list[int]
    total: int

    @classmethod
    def from_diff(cls, diff: CatalogDiff, total: int) -> "CatalogSyncResponse":
        return cls(
            added=[scene.id for scene in diff.added],
            removed=[scene.id for scene in diff.removed],
            derived=[scene.id for scene in diff.derived],
            total=total,
        )


__all__ = ["CatalogSyncResponse", "SceneResponse", "SceneUpdateRequest"]
