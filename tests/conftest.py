from __future__ import annotations

from pathlib import Path

import pytest

from src.slidesync.config import AppConfig, MediaPaths


@pytest.fixture
def media_paths(tmp_path: Path) -> MediaPaths:
    root = tmp_path / "images"
    paths = MediaPaths(
        images=root,
        thumbnails=root / "thumbnails",
        optimized=root / "optimized",
    )
    paths.ensure()
    return paths


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    config = AppConfig(
        media_root=tmp_path / "images",
        data_root=tmp_path / "data",
        ffmpeg_binary=str(tmp_path / "missing-ffmpeg"),
    )
    config.media_paths.ensure()
    config.data_root.mkdir(parents=True, exist_ok=True)
    return config
