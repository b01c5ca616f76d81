"""Application configuration for SlideSync.

Settings are read from ``SLIDESYNC_*`` environment variables. Media files live
under ``media_root`` (served publicly as ``/images``) with derived artifacts in
the ``thumbnails`` and ``optimized`` subdirectories; the scene catalog and the
player state are JSON documents under ``data_root``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(slots=True)
class MediaPaths:
    """Filesystem layout of uploaded media and derived artifacts."""

    images: Path
    thumbnails: Path
    optimized: Path
    public_prefix: str = "/images"

    def ensure(self) -> None:
        self.images.mkdir(parents=True, exist_ok=True)
        self.thumbnails.mkdir(parents=True, exist_ok=True)
        self.optimized.mkdir(parents=True, exist_ok=True)

    def public_url(self, path: Path) -> str:
        """Map a file below ``images`` to its public URL."""
        relative = path.relative_to(self.images).as_posix()
        return f"{self.public_prefix.rstrip('/')}/{relative}"

    def path_for_url(self, url: str) -> Path | None:
        """Inverse of :meth:`public_url`; ``None`` for foreign or unsafe URLs."""
        prefix = self.public_prefix.rstrip("/") + "/"
        if not url.startswith(prefix):
            return None
        relative = url[len(prefix):]
        parts = relative.split("/")
        if not relative or any(part in ("", ".", "..") for part in parts):
            return None
        return self.images.joinpath(*parts)


class AppConfig(BaseSettings):
    """Pydantic settings container for the service layer."""

    model_config = cast(Any, SettingsConfigDict(env_prefix="SLIDESYNC_"))

    media_root: Path = Field(
        default=Path("./public/images"),
        description="Directory holding uploaded images and videos.",
    )
    data_root: Path = Field(
        default=Path("./data"),
        description="Directory holding scenes.json and state.json.",
    )
    public_prefix: str = Field(
        default="/images",
        description="URL prefix the media directory is served under.",
    )
    default_transition_ms: int = Field(
        default=5_000,
        ge=1,
        description="Auto-advance interval used when no state was persisted.",
    )
    thumbnail_width: int = Field(default=480, ge=16)
    thumbnail_height: int = Field(default=360, ge=16)
    thumbnail_quality: int = Field(default=85, ge=1, le=95)
    optimized_image_max_width: int = Field(default=2_560, ge=16)
    optimized_image_quality: int = Field(default=80, ge=1, le=95)
    optimized_video_max_width: int = Field(default=1_920, ge=16)
    video_crf: int = Field(default=28, ge=0, le=51)
    video_preset: str = Field(default="veryfast", min_length=1)
    audio_bitrate: str = Field(default="128k", min_length=1)
    video_thumbnail_offset: str = Field(
        default="00:00:01",
        description="Timestamp of the frame grabbed for video thumbnails.",
    )
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        min_length=1,
        description="Executable used for video thumbnails and transcodes.",
    )
    upload_max_bytes: int = Field(
        default=2 * 1024 * 1024 * 1024,
        ge=1,
        description="Maximum accepted size of a single uploaded file.",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the REST API from a browser.",
    )
    artifact_cache_max_age: int = Field(
        default=30 * 24 * 60 * 60,
        ge=0,
        description="Cache-Control max-age for thumbnails and optimized variants.",
    )
    log_level: str = Field(default="INFO", description="Root log level name.")
    log_json: bool = Field(
        default=True,
        description="Render log events as JSON lines instead of console text.",
    )
    reconcile_on_startup: bool = Field(
        default=True,
        description="Run catalog reconciliation when the application starts.",
    )

    @property
    def media_paths(self) -> MediaPaths:
        return MediaPaths(
            images=self.media_root,
            thumbnails=self.media_root / "thumbnails",
            optimized=self.media_root / "optimized",
            public_prefix=self.public_prefix,
        )

    @property
    def scenes_file(self) -> Path:
        return self.data_root / "scenes.json"

    @property
    def state_file(self) -> Path:
        return self.data_root / "state.json"


def load_config(**overrides: Any) -> AppConfig:
    """Load configuration from the environment and create directories."""
    config = AppConfig(**overrides)
    config.media_paths.ensure()
    config.data_root.mkdir(parents=True, exist_ok=True)
    return config


__all__ = ["AppConfig", "MediaPaths", "load_config"]
