import importlib.util
import json
import sys
from pathlib import Path

from PIL import Image

from src.slidesync.config import AppConfig

PROJECT_ROOT = Path(__file__).resolve().parents[3]
MODULE_PATH = PROJECT_ROOT / "scripts" / "sync_catalog.py"
SPEC = importlib.util.spec_from_file_location("sync_catalog_module", MODULE_PATH)
sync_catalog = importlib.util.module_from_spec(SPEC)
assert SPEC and SPEC.loader
sys.modules["sync_catalog_module"] = sync_catalog
SPEC.loader.exec_module(sync_catalog)


def _config(tmp_path: Path) -> AppConfig:
    config = AppConfig(media_root=tmp_path / "images", data_root=tmp_path / "data")
    config.media_paths.ensure()
    config.data_root.mkdir(parents=True, exist_ok=True)
    return config


def _seed(config: AppConfig) -> None:
    Image.new("RGB", (32, 32), (1, 2, 3)).save(config.media_root / "new.png")
    config.scenes_file.write_text(
        json.dumps([{"id": 7, "filename": "gone.jpg", "title": "gone"}]),
        encoding="utf-8",
    )


def test_perform_sync_dry_run_reports_without_writing(tmp_path, monkeypatch) -> None:
    config = _config(tmp_path)
    _seed(config)
    monkeypatch.setattr(sync_catalog, "load_config", lambda: config)

    summary = sync_catalog.perform_sync(dry_run=True)

    assert summary == sync_catalog.SyncSummary(
        added=1, removed=1, derived=0, total=1, dry_run=True
    )
    saved = json.loads(config.scenes_file.read_text(encoding="utf-8"))
    assert [record["filename"] for record in saved] == ["gone.jpg"]
    assert not (config.media_paths.thumbnails / "new.jpg").exists()


def test_perform_sync_reconciles_and_derives(tmp_path, monkeypatch) -> None:
    config = _config(tmp_path)
    _seed(config)
    monkeypatch.setattr(sync_catalog, "load_config", lambda: config)

    summary = sync_catalog.perform_sync(dry_run=False)

    assert (summary.added, summary.removed, summary.total) == (1, 1, 1)
    saved = json.loads(config.scenes_file.read_text(encoding="utf-8"))
    assert [record["id"] for record in saved] == [8]
    assert saved[0]["thumbnailUrl"] == "/images/thumbnails/new.jpg"
    assert (config.media_paths.thumbnails / "new.jpg").exists()


def test_main_prints_summary(monkeypatch, capsys) -> None:
    monkeypatch.setattr(
        sync_catalog,
        "perform_sync",
        lambda dry_run: sync_catalog.SyncSummary(
            added=2, removed=0, derived=1, total=5, dry_run=dry_run
        ),
    )

    exit_code = sync_catalog.main(["--dry-run"])

    assert exit_code == 0
    captured = capsys.readouterr()
    assert "sync dry-run, added=2, removed=0, derived=1, total=5" in captured.out


def test_main_returns_error_code_on_failure(monkeypatch, capsys) -> None:
    def _boom(dry_run: bool):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(sync_catalog, "perform_sync", _boom)

    assert sync_catalog.main([]) == 2
    assert "sync failed: disk on fire" in capsys.readouterr().err


def test_main_reads_flags_from_command_line(tmp_path, monkeypatch, capsys) -> None:
    config = _config(tmp_path)
    _seed(config)
    monkeypatch.setattr(sync_catalog, "load_config", lambda: config)
    monkeypatch.setattr(sys, "argv", ["sync_catalog.py", "--dry-run"])

    assert sync_catalog.main() == 0

    assert "sync dry-run" in capsys.readouterr().out
    saved = json.loads(config.scenes_file.read_text(encoding="utf-8"))
    assert [record["filename"] for record in saved] == ["gone.jpg"]
    assert not (config.media_paths.thumbnails / "new.jpg").exists()
