"""Whole-file JSON persistence used by the catalog and player repositories."""

from __future__ import annotations

import contextlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from ..exceptions import PersistenceError

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class JsonDocument:
    """A single pretty-printed JSON file rewritten wholesale on every save.

    Reads never raise: a missing or malformed file yields ``default``. Writes go
    to a sibling temp file that replaces the target, so readers never observe a
    half-written document. Concurrent external edits are not guarded against.
    """

    path: Path
    name: str = "document"

    def read(self, default: Any = None) -> Any:
        if not self.path.exists():
            return default
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error(
                "storage.load.failed",
                document=self.name,
                path=str(self.path),
                error=str(exc),
            )
            return default

    def write(self, payload: Any) -> None:
        """Persist ``payload``; raises :class:`PersistenceError` on failure."""
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8"
            )
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"{self.name}: cannot write {self.path}") from exc

    def save(self, payload: Any) -> bool:
        """Best-effort variant of :meth:`write` that logs instead of raising."""
        try:
            self.write(payload)
        except PersistenceError as exc:
            logger.error(
                "storage.save.failed",
                document=self.name,
                path=str(self.path),
                error=str(exc.__cause__ or exc),
            )
            return False
        return True
