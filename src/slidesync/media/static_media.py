"""Static serving of the media directory."""

from __future__ import annotations

import os

from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

ARTIFACT_DIRECTORIES = frozenset({"thumbnails", "optimized"})


class MediaStaticFiles(StaticFiles):
    """Serve ``/images`` with long-lived caching for derived artifacts.

    Thumbnails and optimized variants are regenerated under the same name only
    when their source changes, and uploads always get a fresh name, so clients
    may keep them for ``artifact_max_age`` seconds.
    """

    def __init__(self, *args, artifact_max_age: int = 2_592_000, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.artifact_cache_control = f"public, max-age={artifact_max_age}, immutable"

    def file_response(
        self,
        full_path,
        stat_result: os.stat_result,
        scope: Scope,
        status_code: int = 200,
    ) -> Response:
        response = super().file_response(full_path, stat_result, scope, status_code)
        top_level = self.get_path(scope).split(os.sep, 1)[0]
        if top_level in ARTIFACT_DIRECTORIES:
            response.headers["Cache-Control"] = self.artifact_cache_control
        return response


__all__ = ["ARTIFACT_DIRECTORIES", "MediaStaticFiles"]
