"""Thumbnail and optimized-variant derivation for uploaded media.

Every ``ensure_*`` call is idempotent: an artifact whose modification time is
not older than its source is reused as-is, otherwise it is re-encoded. Encoder
failures never propagate; they are logged and reported as ``None`` so the
scene stays playable without the derived file.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

import structlog
from PIL import Image, ImageOps

from ..config import AppConfig, MediaPaths
from ..exceptions import DerivationError
from ..scenes.scenes_models import Scene, SceneType

logger = structlog.get_logger(__name__)

CommandRunner = Callable[[list[str]], Awaitable[None]]

_STDERR_TAIL = 500


@dataclass(slots=True, frozen=True)
class DerivationSettings:
    """Encoder parameters for thumbnails and optimized variants."""

    thumbnail_size: tuple[int, int] = (480, 360)
    thumbnail_quality: int = 85
    image_max_width: int = 2_560
    image_quality: int = 80
    video_max_width: int = 1_920
    video_crf: int = 28
    video_preset: str = "veryfast"
    audio_bitrate: str = "128k"
    video_thumbnail_offset: str = "00:00:01"
    ffmpeg_binary: str = "ffmpeg"

    @classmethod
    def from_config(cls, config: AppConfig) -> "DerivationSettings":
        return cls(
            thumbnail_size=(config.thumbnail_width, config.thumbnail_height),
            thumbnail_quality=config.thumbnail_quality,
            image_max_width=config.optimized_image_max_width,
            image_quality=config.optimized_image_quality,
            video_max_width=config.optimized_video_max_width,
            video_crf=config.video_crf,
            video_preset=config.video_preset,
            audio_bitrate=config.audio_bitrate,
            video_thumbnail_offset=config.video_thumbnail_offset,
            ffmpeg_binary=config.ffmpeg_binary,
        )


@dataclass(slots=True, frozen=True)
class DerivedArtifacts:
    thumbnail_url: str | None = None
    optimized_url: str | None = None


def _render_jpeg(
    source: Path,
    target: Path,
    *,
    box: tuple[int, int] | None,
    max_width: int | None,
    quality: int,
) -> None:
    """Decode ``source``, apply EXIF orientation, shrink and write a JPEG."""
    try:
        with Image.open(source) as original:
            image = ImageOps.exif_transpose(original)
            if box is not None:
                image.thumbnail(box, Image.Resampling.LANCZOS)
            if max_width is not None and image.width > max_width:
                height = max(1, round(image.height * max_width / image.width))
                image = image.resize((max_width, height), Image.Resampling.LANCZOS)
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(target, "JPEG", quality=quality, optimize=True)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DerivationError(f"cannot encode {source.name}: {exc}") from exc


class MediaDerivationPipeline:
    """Produce thumbnails and size/bitrate optimized variants on demand."""

    def __init__(
        self,
        paths: MediaPaths,
        settings: DerivationSettings | None = None,
        *,
        command_runner: CommandRunner | None = None,
    ) -> None:
        self.paths = paths
        self.settings = settings or DerivationSettings()
        self._run_command: CommandRunner = command_runner or self._run_ffmpeg

    def source_path(self, filename: str) -> Path:
        return self.paths.images / filename

    def thumbnail_path(self, filename: str) -> Path:
        return self.paths.thumbnails / f"{Path(filename).stem}.jpg"

    def optimized_path(self, filename: str, scene_type: SceneType) -> Path:
        suffix = ".mp4" if scene_type is SceneType.VIDEO else ".jpg"
        return self.paths.optimized / f"{Path(filename).stem}{suffix}"

    @staticmethod
    def is_fresh(artifact: Path, source: Path) -> bool:
        """An artifact is fresh if it exists and is not older than its source."""
        try:
            return artifact.stat().st_mtime >= source.stat().st_mtime
        except OSError:
            return False

    async def derive(self, scene: Scene) -> DerivedArtifacts:
        """Ensure both artifacts for ``scene``: thumbnail first, then optimized."""
        source = self.source_path(scene.filename)
        thumbnail_url = await self.ensure_thumbnail(source, scene.type)
        optimized_url = await self.ensure_optimized(source, scene.type)
        return DerivedArtifacts(thumbnail_url=thumbnail_url, optimized_url=optimized_url)

    async def ensure_thumbnail(self, source: Path, scene_type: SceneType) -> str | None:
        target = self.thumbnail_path(source.name)
        if scene_type is SceneType.VIDEO:
            encode = self._video_thumbnail
        else:
            encode = self._image_thumbnail
        return await self._ensure("thumbnail", source, target, encode)

    async def ensure_optimized(self, source: Path, scene_type: SceneType) -> str | None:
        target = self.optimized_path(source.name, scene_type)
        if scene_type is SceneType.VIDEO:
            encode = self._video_optimized
        else:
            encode = self._image_optimized
        return await self._ensure("optimized", source, target, encode)

    def remove_artifacts(self, scene: Scene) -> list[Path]:
        """Delete the derived files of ``scene``; returns the removed paths."""
        removed: list[Path] = []
        for path in (
            self.thumbnail_path(scene.filename),
            self.optimized_path(scene.filename, scene.type),
        ):
            if path.is_file():
                path.unlink()
                removed.append(path)
        return removed

    async def _ensure(
        self,
        kind: str,
        source: Path,
        target: Path,
        encode: Callable[[Path, Path], Awaitable[None]],
    ) -> str | None:
        if not source.is_file():
            logger.warning("media.derive.missing_source", kind=kind, source=str(source))
            return None
        if self.is_fresh(target, source):
            return self.paths.public_url(target)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await encode(source, target)
            if not target.is_file():
                raise DerivationError(f"encoder produced no output for {source.name}")
        except DerivationError as exc:
            self._discard(target)
            logger.error(
                "media.derive.failed", kind=kind, source=str(source), error=str(exc)
            )
            return None
        except Exception:
            self._discard(target)
            logger.exception("media.derive.crashed", kind=kind, source=str(source))
            return None

        logger.info("media.derive.generated", kind=kind, source=str(source), target=str(target))
        return self.paths.public_url(target)

    @staticmethod
    def _discard(target: Path) -> None:
        # A partial output would otherwise pass the freshness check next time.
        with contextlib.suppress(OSError):
            target.unlink(missing_ok=True)

    async def _image_thumbnail(self, source: Path, target: Path) -> None:
        await asyncio.to_thread(
            _render_jpeg,
            source,
            target,
            box=self.settings.thumbnail_size,
            max_width=None,
            quality=self.settings.thumbnail_quality,
        )

    async def _image_optimized(self, source: Path, target: Path) -> None:
        await asyncio.to_thread(
            _render_jpeg,
            source,
            target,
            box=None,
            max_width=self.settings.image_max_width,
            quality=self.settings.image_quality,
        )

    async def _video_thumbnail(self, source: Path, target: Path) -> None:
        width, height = self.settings.thumbnail_size
        await self._run_command(
            [
                "-ss", self.settings.video_thumbnail_offset,
                "-i", str(source),
                "-frames:v", "1",
                "-vf", f"scale={width}:{height}:force_original_aspect_ratio=decrease",
                str(target),
            ]
        )

    async def _video_optimized(self, source: Path, target: Path) -> None:
        await self._run_command(
            [
                "-i", str(source),
                "-vf", f"scale='min({self.settings.video_max_width},iw)':-2",
                "-c:v", "libx264",
                "-preset", self.settings.video_preset,
                "-crf", str(self.settings.video_crf),
                "-c:a", "aac",
                "-b:a", self.settings.audio_bitrate,
                str(target),
            ]
        )

    async def _run_ffmpeg(self, args: list[str]) -> None:
        command = [self.settings.ffmpeg_binary, "-hide_banner", "-loglevel", "error", "-y", *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise DerivationError(f"cannot start {command[0]}: {exc}") from exc
        _, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[-_STDERR_TAIL:]
            raise DerivationError(f"{command[0]} exited with {process.returncode}: {detail}")


__all__ = [
    "CommandRunner",
    "DerivationSettings",
    "DerivedArtifacts",
    "MediaDerivationPipeline",
]
