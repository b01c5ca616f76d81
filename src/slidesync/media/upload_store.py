"""Persist uploaded files into the media directory."""

from __future__ import annotations

import contextlib
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import UploadFile

from ..config import MediaPaths
from ..exceptions import PayloadTooLargeError, UploadReadError

CHUNK_SIZE = 1 * 1024 * 1024  # 1 MiB

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_\-]")
_UNSAFE_SUFFIX_CHARS = re.compile(r"[^a-zA-Z0-9.]")


@dataclass(slots=True)
class StagedUpload:
    """An upload fully written to a hidden temp file, not yet visible."""

    original_name: str
    temp_path: Path
    size_bytes: int


@dataclass(slots=True)
class StoredUpload:
    """Descriptor of an upload written to the media directory."""

    filename: str
    original_name: str
    path: Path
    size_bytes: int


@dataclass(slots=True)
class UploadStore:
    """Stream uploads to ``<epoch_ms>_<sanitized base><ext>`` files.

    Bytes land in a dot-prefixed temp file first, which directory scans skip,
    and are moved to their final name only once complete.
    """

    paths: MediaPaths
    max_bytes: int
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    async def stage_upload(self, upload: UploadFile) -> StagedUpload:
        """Copy upload contents to a hidden temp file chunk by chunk."""
        original_name = Path(upload.filename or "upload.bin").name
        self.paths.images.mkdir(parents=True, exist_ok=True)
        temp_path = self.paths.images / f".upload-{uuid.uuid4().hex}.part"

        size = 0
        try:
            with temp_path.open("wb") as sink:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise PayloadTooLargeError(
                            f"{original_name} exceeds {self.max_bytes} bytes"
                        )
                    sink.write(chunk)
        except PayloadTooLargeError:
            self._remove(temp_path)
            raise
        except OSError as exc:
            self._remove(temp_path)
            raise UploadReadError(f"cannot store {original_name}") from exc
        return StagedUpload(original_name=original_name, temp_path=temp_path, size_bytes=size)

    def commit(self, staged: StagedUpload) -> StoredUpload:
        """Move a staged upload to its final, collision-free name."""
        filename = self.derive_filename(staged.original_name)
        target = self.paths.images / filename
        counter = 1
        while target.exists():
            stem, suffix = Path(filename).stem, Path(filename).suffix
            target = self.paths.images / f"{stem}-{counter}{suffix}"
            counter += 1

        try:
            os.replace(staged.temp_path, target)
        except OSError as exc:
            self._remove(staged.temp_path)
            raise UploadReadError(f"cannot store {staged.original_name}") from exc

        self.log.info(
            "media.upload.persisted",
            extra={
                "filename": target.name,
                "original_name": staged.original_name,
                "size_bytes": staged.size_bytes,
            },
        )
        return StoredUpload(
            filename=target.name,
            original_name=staged.original_name,
            path=target,
            size_bytes=staged.size_bytes,
        )

    def discard(self, staged: StagedUpload) -> None:
        self._remove(staged.temp_path)

    async def persist_upload(self, upload: UploadFile) -> StoredUpload:
        return self.commit(await self.stage_upload(upload))

    @staticmethod
    def derive_filename(original_name: str, *, now_ms: int | None = None) -> str:
        path = Path(original_name)
        suffix = _UNSAFE_SUFFIX_CHARS.sub("", path.suffix)
        stem = _UNSAFE_CHARS.sub("_", path.stem) or "upload"
        stamp = now_ms if now_ms is not None else int(time.time() * 1000)
        return f"{stamp}_{stem}{suffix}"

    @staticmethod
    def _remove(path: Path) -> None:
        with contextlib.suppress(OSError):
            path.unlink(missing_ok=True)


__all__ = ["StagedUpload", "StoredUpload", "UploadStore"]
