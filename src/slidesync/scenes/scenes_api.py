"""HTTP routes for the scene catalog (list, upload, edit, delete, sync)."""

from __future__ import annotations

import logging
from typing import cast

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status

from ..exceptions import NotFoundError, PayloadTooLargeError, UploadReadError, ensure_found
from ..media.upload_store import StagedUpload, StoredUpload, UploadStore
from ..player.sync_server import SyncServer
from .scenes_schemas import CatalogSyncResponse, SceneResponse, SceneUpdateRequest
from .scenes_models import Scene
from .scenes_service import SceneCatalog

router = APIRouter(prefix="/api/scenes", tags=["scenes"])
logger = logging.getLogger(__name__)


def get_catalog(request: Request) -> SceneCatalog:
    """Fetch the scene catalog from application state."""
    try:
        return request.app.state.catalog  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("SceneCatalog is not configured") from exc


def get_sync_server(request: Request) -> SyncServer:
    try:
        return request.app.state.sync_server  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("SyncServer is not configured") from exc


def get_upload_store(request: Request) -> UploadStore:
    try:
        return request.app.state.upload_store  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("UploadStore is not configured") from exc


def _scene_not_found(scene_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"status": "error", "failure_reason": "scene_not_found", "scene_id": scene_id},
    )


@router.get("", response_model=list[SceneResponse], response_model_by_alias=True)
async def list_scenes(catalog: SceneCatalog = Depends(get_catalog)) -> list[SceneResponse]:
    return [SceneResponse.from_scene(scene, catalog.paths) for scene in catalog.list_scenes()]


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=list[SceneResponse],
    response_model_by_alias=True,
)
async def upload_scenes(
    files: list[UploadFile] | None = File(None),
    server: SyncServer = Depends(get_sync_server),
    store: UploadStore = Depends(get_upload_store),
) -> list[SceneResponse]:
    """Store uploaded files, register them and wait for their derivations.

    Every file is staged before any is registered, so a rejected file leaves
    the catalog untouched for the whole request.
    """
    if not files:
        logger.warning("scenes.upload.no_files")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": "error", "failure_reason": "no_files"},
        )

    logger.info("scenes.upload.received", extra={"count": len(files)})
    staged: list[StagedUpload] = []
    for upload in files:
        try:
            staged.append(await store.stage_upload(upload))
        except PayloadTooLargeError as exc:
            _discard_all(store, staged)
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail={
                    "status": "error",
                    "failure_reason": "payload_too_large",
                    "filename": upload.filename,
                },
            ) from exc
        except UploadReadError as exc:
            _discard_all(store, staged)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "status": "error",
                    "failure_reason": "upload_failed",
                    "filename": upload.filename,
                },
            ) from exc

    stored: list[StoredUpload] = []
    for index, item in enumerate(staged):
        try:
            stored.append(store.commit(item))
        except UploadReadError as exc:
            _discard_all(store, staged[index + 1 :])
            for done in stored:
                done.path.unlink(missing_ok=True)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "status": "error",
                    "failure_reason": "upload_failed",
                    "filename": item.original_name,
                },
            ) from exc

    created = []
    for item in stored:
        try:
            scene = await server.register_upload(item)
        except NotFoundError as exc:  # pragma: no cover - file vanished between steps
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"status": "error", "failure_reason": "upload_vanished"},
            ) from exc
        logger.info(
            "scenes.upload.created",
            extra={"scene_id": scene.id, "filename": scene.filename, "size": item.size_bytes},
        )
        created.append(SceneResponse.from_scene(scene, server.catalog.paths))
    return created


def _discard_all(store: UploadStore, staged: list[StagedUpload]) -> None:
    for item in staged:
        store.discard(item)


@router.post("/sync", response_model=CatalogSyncResponse)
async def sync_catalog(catalog: SceneCatalog = Depends(get_catalog)) -> CatalogSyncResponse:
    """Reconcile the catalog with the media directory on demand."""
    diff = await catalog.reconcile()
    return CatalogSyncResponse.from_diff(diff, total=len(catalog))


@router.patch("/{scene_id}", response_model=SceneResponse, response_model_by_alias=True)
async def update_scene(
    scene_id: int,
    payload: SceneUpdateRequest,
    catalog: SceneCatalog = Depends(get_catalog),
) -> SceneResponse:
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }
    try:
        updated = ensure_found(
            catalog.update_scene(scene_id, changes), entity="scene", identifier=scene_id
        )
    except NotFoundError as exc:
        raise _scene_not_found(scene_id) from exc
    return SceneResponse.from_scene(cast(Scene, updated), catalog.paths)


@router.delete("/{scene_id}")
async def delete_scene(
    scene_id: int,
    server: SyncServer = Depends(get_sync_server),
) -> dict[str, bool]:
    removed = server.delete_scene(scene_id)
    if removed is None:
        raise _scene_not_found(scene_id)
    return {"ok": True}
