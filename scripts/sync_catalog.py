"""Cron entry point reconciling the scene catalog with the media directory."""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass

from src.slidesync.config import load_config
from src.slidesync.logging import configure_logging
from src.slidesync.media.media_service import DerivationSettings, MediaDerivationPipeline
from src.slidesync.scenes.scenes_repository import SceneRepository
from src.slidesync.scenes.scenes_service import SceneCatalog


@dataclass(slots=True)
class SyncSummary:
    added: int
    removed: int
    derived: int
    total: int
    dry_run: bool


def perform_sync(*, dry_run: bool) -> SyncSummary:
    """Reconcile once and return summary counters."""
    config = load_config()
    pipeline = MediaDerivationPipeline(
        config.media_paths, DerivationSettings.from_config(config)
    )
    catalog = SceneCatalog(
        repository=SceneRepository(config.scenes_file),
        paths=config.media_paths,
        deriver=pipeline.derive,
    )

    if dry_run:
        on_disk = set(catalog.scan_media_directory())
        known = {scene.filename for scene in catalog.list_scenes()}
        stale = [scene for scene in catalog.list_scenes() if scene.filename in on_disk]
        return SyncSummary(
            added=len(on_disk - known),
            removed=len(known - on_disk),
            derived=sum(1 for scene in stale if catalog.needs_derivation(scene)),
            total=len(on_disk),
            dry_run=True,
        )

    diff = asyncio.run(catalog.reconcile())
    return SyncSummary(
        added=len(diff.added),
        removed=len(diff.removed),
        derived=len(diff.derived),
        total=len(catalog),
        dry_run=False,
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile scenes.json with the media directory.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without writing anything.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(json_output=False)
    try:
        summary = perform_sync(dry_run=args.dry_run)
    except Exception as exc:
        print(f"sync failed: {exc}", file=sys.stderr)
        return 2

    label = "sync dry-run" if summary.dry_run else "sync done"
    print(
        f"{label}, added={summary.added}, removed={summary.removed}, "
        f"derived={summary.derived}, total={summary.total}",
        file=sys.stdout,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
